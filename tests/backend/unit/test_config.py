from confidential_nft.backend.config import load_settings


def test_load_settings_reads_expected_env(monkeypatch) -> None:
    monkeypatch.setenv("CNFT_NAME", "Vault Cards")
    monkeypatch.setenv("CNFT_SYMBOL", "VAULT")
    monkeypatch.setenv("CNFT_ADMIN", "0xAdmin")
    monkeypatch.setenv("CNFT_MINT_PRICE_WEI", "20000000000000000")
    monkeypatch.setenv("CNFT_MAX_SUPPLY", "50")
    monkeypatch.setenv("CNFT_DATABASE_URL", "postgresql://local")
    monkeypatch.setenv("CNFT_HOST", "localhost")
    monkeypatch.setenv("CNFT_PORT", "9000")
    monkeypatch.setenv("CNFT_LOG_LEVEL", "debug")

    settings = load_settings()

    assert settings.name == "Vault Cards"
    assert settings.symbol == "VAULT"
    assert settings.admin == "0xAdmin"
    assert settings.mint_price == 2 * 10**16
    assert settings.max_supply == 50
    assert settings.database_url == "postgresql://local"
    assert settings.host == "localhost"
    assert settings.port == 9000
    assert settings.log_level == "DEBUG"


def test_load_settings_applies_defaults(monkeypatch) -> None:
    for name in (
        "CNFT_NAME",
        "CNFT_SYMBOL",
        "CNFT_ADMIN",
        "CNFT_MINT_PRICE_WEI",
        "CNFT_MAX_SUPPLY",
        "CNFT_DATABASE_URL",
        "CNFT_HOST",
        "CNFT_PORT",
        "CNFT_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)

    settings = load_settings()

    assert settings.name == "ConfidentialNFT"
    assert settings.symbol == "CNFT"
    assert settings.admin == "dev-admin"
    assert settings.mint_price == 10**16
    assert settings.max_supply == 10000
    assert settings.database_url is None
    assert settings.host == "127.0.0.1"
    assert settings.port == 8000
    assert settings.log_level == "INFO"
