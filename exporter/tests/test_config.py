import pytest
from pydantic import ValidationError

from exporter.app.core.config import Settings, get_settings
from exporter.tests.fixtures.fonts import build_font

SECRET = "config-test-secret-0123456789"


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (
        "EXPORTER_JWT_SECRET",
        "EXPORTER_TOKEN_TTL_SECONDS",
        "EXPORTER_CSV_LINE_TERMINATOR",
        "EXPORTER_PDF_MAX_RENDERED_ROWS",
        "EXPORTER_PDF_REPEAT_HEADERS",
        "EXPORTER_PDF_FONT_PATH",
        "EXPORTER_PDF_BOLD_FONT_PATH",
    ):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def test_reads_prefixed_environment(monkeypatch):
    monkeypatch.setenv("EXPORTER_JWT_SECRET", SECRET)
    monkeypatch.setenv("EXPORTER_TOKEN_TTL_SECONDS", "120")
    monkeypatch.setenv("EXPORTER_PDF_REPEAT_HEADERS", "true")

    settings = Settings(_env_file=None)

    assert settings.jwt_secret.get_secret_value() == SECRET
    assert settings.token_ttl_seconds == 120
    assert settings.pdf_layout().repeat_headers is True


def test_defaults():
    settings = Settings(_env_file=None, jwt_secret=SECRET)

    assert settings.token_ttl_seconds == 3600
    assert settings.csv_line_terminator == "\n"
    assert settings.pdf_layout().max_rendered_rows is None

    credential = settings.credential_config()
    assert credential.issuer == "export-service"
    assert credential.subject == "web-client"


def test_secret_is_required():
    with pytest.raises(ValidationError):
        Settings(_env_file=None)


def test_short_secret_is_rejected():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, jwt_secret="too-short")


def test_secret_is_not_leaked_in_repr():
    settings = Settings(_env_file=None, jwt_secret=SECRET)

    assert SECRET not in repr(settings)


def test_unsupported_line_terminator_is_rejected():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, jwt_secret=SECRET, csv_line_terminator="\r")


def test_settings_are_cached(monkeypatch):
    monkeypatch.setenv("EXPORTER_JWT_SECRET", SECRET)

    assert get_settings() is get_settings()


def test_missing_pdf_font_is_rejected(tmp_path):
    with pytest.raises(ValidationError):
        Settings(
            _env_file=None,
            jwt_secret=SECRET,
            pdf_font_path=tmp_path / "absent.ttf",
        )


def test_pdf_font_reaches_layout(monkeypatch, tmp_path):
    font = build_font(tmp_path / "ExportTestSans.ttf")
    monkeypatch.setenv("EXPORTER_JWT_SECRET", SECRET)
    monkeypatch.setenv("EXPORTER_PDF_FONT_PATH", str(font))

    layout = Settings(_env_file=None).pdf_layout()

    assert layout.font_path == font
    assert layout.bold_font_path is None
