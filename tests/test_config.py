# tests/test_config.py
"""
Unit tests for configuration loading and the public factory helpers.
"""
from unittest.mock import MagicMock, patch

import pytest

from x402_gate import api
from x402_gate.cli import run_cli
from x402_gate.core.config import (
    DEFAULT_FACILITATOR_URL,
    ClientConfig,
    ConfigError,
    FacilitatorConfig,
    load_client_config,
    load_facilitator_config,
)
from x402_gate.core.environment import build_environment, load_env_file, read_env_file
from x402_gate.core.http_client import PaymentRetryClient
from x402_gate.core.models import SupportedKinds

from conftest import PAYER_KEY


@pytest.fixture
def env_file(tmp_path):
    path = tmp_path / ".env"
    path.write_text(
        "# facilitator\n"
        "export GATE_WEB3_API_KEY=file-key\n"
        "GATE_WEB3_API_SECRET='file-secret'\n"
        'X402_FACILITATOR_URL="https://facilitator.test/x402/"\n'
        "not a setting\n",
        encoding="utf-8",
    )
    return str(path)


class TestEnvironment:
    def test_file_never_overrides_base(self, env_file):
        environment = build_environment(env_file=env_file, base={"GATE_WEB3_API_KEY": "process-key"})
        assert environment.get("GATE_WEB3_API_KEY") == "process-key"
        assert environment.get("GATE_WEB3_API_SECRET") == "file-secret"

    def test_overrides_always_win(self, env_file):
        environment = build_environment(
            env_file=env_file, base={}, overrides={"GATE_WEB3_API_KEY": "override"}
        )
        assert environment.get("GATE_WEB3_API_KEY") == "override"

    def test_missing_file_is_ignored(self, tmp_path):
        assert build_environment(env_file=str(tmp_path / "absent"), base={}).variables == {}

    def test_inline_comments_and_quotes(self, tmp_path):
        path = tmp_path / ".env"
        path.write_text("A=plain # note\nB='keep # this'\n=orphan\n", encoding="utf-8")
        assert read_env_file(path) == {"A": "plain", "B": "keep # this"}

    def test_load_env_file_into_mapping(self, env_file):
        target = {"GATE_WEB3_API_SECRET": "kept"}
        load_env_file(env_file, environ=target)
        assert target["GATE_WEB3_API_SECRET"] == "kept"
        assert target["GATE_WEB3_API_KEY"] == "file-key"


class TestFacilitatorConfig:
    def test_defaults(self):
        config = load_facilitator_config(env_file=None, base={})
        assert config.url == DEFAULT_FACILITATOR_URL
        assert config.signing_enabled is False
        assert config.timeout_seconds == 30.0

    def test_from_file(self, env_file):
        config = load_facilitator_config(env_file=env_file, base={})
        assert config.url == "https://facilitator.test/x402"
        assert config.signing_enabled is True

    def test_keyword_arguments_win(self, env_file):
        config = load_facilitator_config(env_file=env_file, base={}, api_key="kwarg-key", timeout_seconds=5)
        assert config.api_key == "kwarg-key"
        assert config.timeout_seconds == 5.0

    def test_secret_is_not_in_repr(self):
        assert "top-secret" not in repr(FacilitatorConfig(api_key="k", api_secret="top-secret"))

    @pytest.mark.parametrize(
        "values",
        [
            {"X402_FACILITATOR_URL": "ftp://facilitator.test"},
            {"X402_FACILITATOR_TIMEOUT_SECONDS": "0"},
            {"X402_FACILITATOR_TIMEOUT_SECONDS": "soon"},
        ],
    )
    def test_invalid_values(self, values):
        with pytest.raises(ConfigError):
            FacilitatorConfig.from_mapping(values)


class TestClientConfig:
    def test_key_without_prefix_is_normalized(self):
        config = load_client_config(env_file=None, base={}, private_key=PAYER_KEY[2:])
        assert config.private_key == PAYER_KEY
        assert PAYER_KEY not in repr(config)

    def test_key_is_optional(self):
        assert load_client_config(env_file=None, base={}).private_key is None

    @pytest.mark.parametrize(
        "values",
        [
            {"X402_PAYER_PRIVATE_KEY": ""},
            {"X402_PAYER_PRIVATE_KEY": "0x1234"},
            {"X402_PAYER_PRIVATE_KEY": "0x" + "00" * 32},
            {"X402_VALIDITY_SECONDS": "-5"},
            {"X402_REQUEST_TIMEOUT_SECONDS": "never"},
        ],
    )
    def test_invalid_values(self, values):
        with pytest.raises(ConfigError):
            ClientConfig.from_mapping(values)


class TestFactories:
    def test_payment_client_needs_a_signer(self):
        with pytest.raises(ConfigError):
            api.create_payment_client(config=ClientConfig())

    def test_payment_client_from_key(self):
        client = api.create_payment_client(
            config=ClientConfig(private_key=PAYER_KEY, request_timeout_seconds=12.0)
        )
        assert isinstance(client, PaymentRetryClient)
        assert client.timeout == 12.0
        assert client.registry.find("exact", "eip155:10087") is not None
        assert client.registry.find("exact", "eip155:8453") is not None

    def test_config_and_overrides_are_exclusive(self):
        with pytest.raises(ValueError):
            api.create_facilitator_client(config=FacilitatorConfig(), overrides={"A": "B"})


class TestCli:
    def test_supported_prints_kinds(self, capsys):
        facilitator = MagicMock()
        facilitator.get_supported.return_value = SupportedKinds.from_response(
            {"kinds": [{"x402Version": 2, "scheme": "exact", "network": "eip155:10087"}]}
        )
        with patch("x402_gate.cli.create_facilitator_client", return_value=facilitator):
            code = run_cli(
                ["supported", "--env-file", "/nonexistent/.env", "--set", "X402_FACILITATOR_URL=https://f.test"]
            )

        assert code == 0
        assert "eip155:10087" in capsys.readouterr().out

    def test_bad_override_syntax(self):
        with pytest.raises(SystemExit):
            run_cli(["fetch", "http://resource.test", "--set", "NOVALUE"])
