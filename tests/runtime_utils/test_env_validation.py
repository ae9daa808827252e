import pytest
from _pytest.monkeypatch import MonkeyPatch

from transport_py.runtime_utils.env_validation import validate_environment

DB_VARIABLES = {
    "CAT_DB_HOST": "localhost",
    "CAT_DB_NAME": "catalog",
    "CAT_DB_PORT": "5432",
    "CAT_DB_USER": "postgres",
}


def test_valid_environment(monkeypatch: MonkeyPatch, caplog: pytest.LogCaptureFixture) -> None:
    """It passes when every variable is set and hides the password."""
    monkeypatch.setenv("SERVICE_NAME", "gtfs_rt_validation")
    monkeypatch.setenv("HISTORY_BUCKET", "transport-history")
    monkeypatch.setenv("CAT_DB_PASSWORD", "hunter2")
    for key, value in DB_VARIABLES.items():
        monkeypatch.setenv(key, value)

    required = ["HISTORY_BUCKET"]
    validate_environment(required_variables=required, db_prefixes=["CAT"])

    assert required == ["HISTORY_BUCKET"]
    assert "HISTORY_BUCKET=transport-history" in caplog.text
    assert "hunter2" not in caplog.text
    assert "status=complete" in caplog.text


def test_missing_variables(monkeypatch: MonkeyPatch) -> None:
    """It raises naming the missing variables."""
    monkeypatch.setenv("SERVICE_NAME", "gtfs_rt_validation")
    monkeypatch.delenv("HISTORY_BUCKET", raising=False)

    with pytest.raises(EnvironmentError, match="HISTORY_BUCKET"):
        validate_environment(required_variables=["HISTORY_BUCKET"])


def test_password_or_region(monkeypatch: MonkeyPatch) -> None:
    """Without a database password a region is needed to build an auth token."""
    monkeypatch.setenv("SERVICE_NAME", "gtfs_rt_validation")
    monkeypatch.delenv("CAT_DB_PASSWORD", raising=False)
    monkeypatch.delenv("DB_REGION", raising=False)
    for key, value in DB_VARIABLES.items():
        monkeypatch.setenv(key, value)

    with pytest.raises(EnvironmentError, match="DB_REGION"):
        validate_environment(required_variables=[], db_prefixes=["CAT"])

    monkeypatch.setenv("DB_REGION", "eu-west-3")
    validate_environment(required_variables=[], db_prefixes=["CAT"])


def test_credentials_are_masked(monkeypatch: MonkeyPatch, caplog: pytest.LogCaptureFixture) -> None:
    """Optional credentials are logged masked, unset optional variables are not logged."""
    monkeypatch.setenv("SERVICE_NAME", "gtfs_rt_validation")
    monkeypatch.setenv("S3_HOST", "http://localhost:9000")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "wJalrXUtnFEMI")
    monkeypatch.delenv("TEMP_DIR", raising=False)

    validate_environment(
        required_variables=[],
        optional_variables=["S3_HOST", "AWS_SECRET_ACCESS_KEY", "TEMP_DIR"],
    )

    assert "S3_HOST=http://localhost:9000" in caplog.text
    assert "AWS_SECRET_ACCESS_KEY=**********" in caplog.text
    assert "wJalrXUtnFEMI" not in caplog.text
    assert "TEMP_DIR" not in caplog.text


def test_shared_region_reported_once(monkeypatch: MonkeyPatch) -> None:
    """Two password-less databases report the missing region once."""
    monkeypatch.setenv("SERVICE_NAME", "gtfs_rt_validation")
    monkeypatch.delenv("DB_REGION", raising=False)
    for prefix in ("CAT", "HIST"):
        monkeypatch.delenv(f"{prefix}_DB_PASSWORD", raising=False)
        for key, value in DB_VARIABLES.items():
            monkeypatch.setenv(key.replace("CAT", prefix), value)

    with pytest.raises(EnvironmentError) as error:
        validate_environment(required_variables=[], db_prefixes=["CAT", "HIST"])

    assert str(error.value) == "Missing required environment variables ['DB_REGION']"
