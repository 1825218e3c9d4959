"""Unit tests for Settings."""

import pytest
from pydantic import ValidationError

from dexarb.config.constants import DEFAULT_PAIRS
from dexarb.config.settings import Settings


class TestSettings:
    """Tests for Settings validation."""

    def test_defaults(self) -> None:
        settings = Settings(_env_file=None)

        assert settings.pairs == list(DEFAULT_PAIRS)
        assert settings.threshold_pct == 0.5
        assert settings.poll_interval_s == pytest.approx(5.0)
        assert settings.rotation_interval_s == pytest.approx(3.0)
        assert settings.fetch_policy == "overlap"
        assert settings.quote_source == "simulated"

    def test_pairs_normalized(self) -> None:
        settings = Settings(_env_file=None, pairs=["wbnb/busd", " CAKE/busd ", "WBNB/BUSD"])

        assert settings.pairs == ["WBNB/BUSD", "CAKE/BUSD"]

    @pytest.mark.parametrize("pairs", [[], ["WBNB"], ["WBNB/"], ["A/B/C"]])
    def test_invalid_pairs(self, pairs: list[str]) -> None:
        with pytest.raises(ValidationError):
            Settings(_env_file=None, pairs=pairs)

    def test_negative_threshold_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Settings(_env_file=None, threshold_pct=-0.1)

    def test_unknown_fetch_policy_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Settings(_env_file=None, fetch_policy="queue")

    def test_token_symbols_uppercased(self) -> None:
        settings = Settings(_env_file=None, token_addresses={"wbnb": "0x1"})

        assert settings.token_addresses == {"WBNB": "0x1"}

    def test_environment_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("THRESHOLD_PCT", "1.25")
        monkeypatch.setenv("PAIRS", '["cake/busd"]')

        settings = Settings(_env_file=None)

        assert settings.threshold_pct == 1.25
        assert settings.pairs == ["CAKE/BUSD"]
