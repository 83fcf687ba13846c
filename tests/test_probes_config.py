"""Tests for config parsing, the configuration probe and credential discovery."""

from __future__ import annotations

import json
import textwrap
from pathlib import Path

import pytest

from clawdoctor.health.engine import Severity
from clawdoctor.probes.configuration import (
    ConfigError,
    ConfigurationProbe,
    gateway_mode,
    parse_config_text,
    parse_env_file,
    strip_json_comments,
)
from clawdoctor.probes.credentials import CredentialsProbe, iter_config_secrets, mask_secret


def _by_name(outcomes):
    return {o.check_name: o for o in outcomes}


def _write_config(config_dir: Path, text: str) -> Path:
    path = config_dir / "clawdbot.json"
    path.write_text(textwrap.dedent(text))
    return path


# ── Parsing ──────────────────────────────────────────────────────────────────


class TestConfigParsing:
    def test_comments_and_trailing_commas(self) -> None:
        text = """
        {
          // line comment
          "gateway": { "mode": "local", /* inline */ "port": 18789, },
          "url": "http://example.com/path", // slashes inside strings survive
          "list": [1, 2, 3,],
        }
        """
        data = parse_config_text(text)
        assert data["gateway"] == {"mode": "local", "port": 18789}
        assert data["url"] == "http://example.com/path"
        assert data["list"] == [1, 2, 3]

    def test_comment_markers_inside_strings_untouched(self) -> None:
        text = '{"a": "/* not a comment */", "b": "quote \\" // still string"}'
        assert json.loads(strip_json_comments(text)) == {
            "a": "/* not a comment */",
            "b": 'quote " // still string',
        }

    def test_trailing_comma_before_comment(self) -> None:
        assert parse_config_text('{"a": 1, // last\n}') == {"a": 1}

    def test_syntax_error(self) -> None:
        with pytest.raises(ConfigError, match="line"):
            parse_config_text('{"a": }')

    def test_error_position_matches_original_text(self) -> None:
        text = textwrap.dedent("""\
            {
              /* a comment
                 spanning
                 several lines */
              "gateway": {"mode": "local"}, // trailing
              "ok": true,
              "bad": nope
            }
        """)
        with pytest.raises(ConfigError, match=r"line 7, column 10"):
            parse_config_text(text)

    def test_stripping_preserves_layout(self) -> None:
        text = '{\n  // c\n  "a": [1, 2,],  /* x\ny */\n}'
        stripped = strip_json_comments(text)
        assert len(stripped) == len(text)
        assert stripped.count("\n") == text.count("\n")

    def test_non_object_top_level(self) -> None:
        with pytest.raises(ConfigError, match="object"):
            parse_config_text("[1, 2]")

    def test_gateway_mode_lookup(self) -> None:
        assert gateway_mode({"gateway": {"mode": "remote"}}) == "remote"
        assert gateway_mode({"mode": "local"}) == "local"
        assert gateway_mode({}) is None

    def test_env_file(self, tmp_path: Path) -> None:
        path = tmp_path / ".env"
        path.write_text(
            "# comment\n\nANTHROPIC_API_KEY=sk-ant-123\nexport OPENAI_API_KEY=\"sk-oa\"\nBROKEN LINE\n",
        )
        assert parse_env_file(path) == {"ANTHROPIC_API_KEY": "sk-ant-123", "OPENAI_API_KEY": "sk-oa"}

    def test_env_file_inline_comments(self, tmp_path: Path) -> None:
        path = tmp_path / ".env"
        path.write_text("ANTHROPIC_API_KEY= # fill me in\nOPENAI_API_KEY=sk-proj-123 # prod key\nBARE_KEY\n")
        assert parse_env_file(path) == {"ANTHROPIC_API_KEY": "", "OPENAI_API_KEY": "sk-proj-123"}


# ── Configuration probe ──────────────────────────────────────────────────────


class TestConfigurationProbe:
    def test_valid_local_config(self, config_dir: Path, ctx) -> None:
        _write_config(config_dir, """
            {
              // gateway settings
              "gateway": { "mode": "local" },
            }
        """)
        outcomes = _by_name(ConfigurationProbe().run(ctx))
        assert outcomes["Config Syntax"].severity is Severity.PASS
        assert outcomes["Gateway Mode"].severity is Severity.PASS
        assert not [o for o in outcomes.values() if o.severity is Severity.FAIL]

    def test_top_level_mode_local(self, config_dir: Path, ctx) -> None:
        _write_config(config_dir, '{"mode": "local"}')
        outcomes = _by_name(ConfigurationProbe().run(ctx))
        assert outcomes["Gateway Mode"].severity is Severity.PASS

    def test_remote_mode_warns(self, config_dir: Path, ctx) -> None:
        _write_config(config_dir, '{"gateway": {"mode": "remote"}}')
        outcomes = _by_name(ConfigurationProbe().run(ctx))
        assert outcomes["Gateway Mode"].severity is Severity.WARN

    def test_syntax_error_fails(self, config_dir: Path, ctx) -> None:
        _write_config(config_dir, '{"gateway": {"mode": "local"')
        outcomes = _by_name(ConfigurationProbe().run(ctx))
        syntax = outcomes["Config Syntax"]
        assert syntax.severity is Severity.FAIL
        assert "line" in syntax.detail
        assert "Gateway Mode" not in outcomes

    def test_missing_everything_warns(self, tmp_path: Path, make_ctx) -> None:
        missing = tmp_path / "nowhere"
        ctx = make_ctx(config_dir=missing, workspace_dir=missing / "workspace")
        outcomes = ConfigurationProbe().run(ctx)
        assert {o.severity for o in outcomes} == {Severity.WARN}
        assert [o.check_name for o in outcomes] == [
            "Config Directory", "Config File", ".env File", "Workspace", "Memory Storage",
        ]

    def test_unresolved_config_dir_fails(self, make_ctx) -> None:
        [o] = ConfigurationProbe().run(make_ctx(config_dir=None, workspace_dir=None))
        assert o.severity is Severity.FAIL
        assert o.check_name == "Config Directory"

    def test_directories_present(self, config_dir: Path, ctx) -> None:
        (config_dir / "workspace").mkdir()
        memory = config_dir / "memory"
        memory.mkdir()
        (memory / "main.sqlite").touch()
        (memory / "agent.db").touch()
        (memory / "notes.txt").touch()
        (config_dir / ".env").write_text("A=1\nB=2\n")

        outcomes = _by_name(ConfigurationProbe().run(ctx))
        assert outcomes["Workspace"].severity is Severity.PASS
        assert outcomes["Memory Storage"].severity is Severity.PASS
        assert outcomes["Memory Storage"].message.startswith("2 database file(s)")
        assert outcomes[".env File"].message == "2 entries"


# ── Masking ──────────────────────────────────────────────────────────────────


class TestMaskSecret:
    def test_long_secret(self) -> None:
        assert mask_secret("sk-ant-REDACTED") == "sk-ant-a...WXYZ"

    def test_empty(self) -> None:
        assert mask_secret("") == "(empty)"

    @pytest.mark.parametrize("length", list(range(1, 40)))
    def test_never_reveals_middle(self, length: int) -> None:
        value = "".join(chr(ord("a") + i % 26) for i in range(length))
        masked = mask_secret(value)
        head, _, tail = masked.partition("...")
        assert len(head) <= min(8, length)
        assert len(tail) <= min(4, length)
        assert value.startswith(head)
        assert value.endswith(tail)
        # At least one character is always hidden
        assert len(head) + len(tail) < length


# ── Credentials probe ────────────────────────────────────────────────────────


class TestCredentialsProbe:
    def test_none_found_single_fail(self, ctx) -> None:
        outcomes = CredentialsProbe().run(ctx)
        assert len(outcomes) == 1
        [o] = outcomes
        assert o.severity is Severity.FAIL
        assert o.message == "No provider credentials found"

    def test_environment_key(self, make_ctx) -> None:
        secret = "sk-ant-REDACTED"
        outcomes = CredentialsProbe().run(make_ctx({"ANTHROPIC_API_KEY": secret}))
        [o] = outcomes
        assert o.severity is Severity.PASS
        assert o.check_name == "ANTHROPIC_API_KEY"
        assert secret not in o.message
        assert mask_secret(secret) in o.message

    def test_dotenv_key(self, config_dir: Path, ctx) -> None:
        (config_dir / ".env").write_text("OPENAI_API_KEY=sk-proj-abcdefghijklmnop\nUNRELATED=1\n")
        [o] = CredentialsProbe().run(ctx)
        assert o.check_name == "OPENAI_API_KEY"
        assert "set in .env" in o.message

    def test_config_references(self, config_dir: Path, ctx) -> None:
        _write_config(config_dir, """
            {
              "gateway": {"auth": {"token": "gateway-secret-token"}},
              "models": {"providers": {"anthropic": {"apiKey": "${ANTHROPIC_API_KEY}"}}},
              "skills": [{"name": "x", "secret": "abcdefghijklmnopqrstu"}],
            }
        """)
        outcomes = _by_name(CredentialsProbe().run(ctx))
        assert set(outcomes) == {"models.providers.anthropic.apiKey", "skills[0].secret"}
        assert "references ${ANTHROPIC_API_KEY}" in outcomes["models.providers.anthropic.apiKey"].message
        assert "abcdefghijklmnopqrstu" not in outcomes["skills[0].secret"].message

    def test_iter_config_secrets_ignores_non_strings(self) -> None:
        config = {"apiKey": 123, "nested": {"token": "", "key": "value-1234567890"}}
        assert list(iter_config_secrets(config)) == [("nested.key", "value-1234567890")]

    def test_commented_out_dotenv_key_is_not_a_credential(self, config_dir: Path, ctx) -> None:
        (config_dir / ".env").write_text("ANTHROPIC_API_KEY= # fill me in\n")
        [o] = CredentialsProbe().run(ctx)
        assert o.severity is Severity.FAIL
        assert o.message == "No provider credentials found"

    def test_channel_bot_tokens_are_not_provider_credentials(self, config_dir: Path, ctx) -> None:
        _write_config(config_dir, """
            {
              "channels": {
                "discord": {"token": "discord-bot-token-0123456789"},
                "telegram": {"botToken": "123:abc", "token": "tg-token-0123456789"},
              },
            }
        """)
        [o] = CredentialsProbe().run(ctx)
        assert o.severity is Severity.FAIL
        assert o.message == "No provider credentials found"
