import json
from pathlib import Path

import pytest

from molecule_import import cli
from molecule_import.config import load_settings

SAMPLE_CSV = Path(__file__).parent / "data" / "molecules.csv"


def test_settings_from_environment(monkeypatch):
    monkeypatch.setenv("MOLECULE_IMPORT_DIALECT", "SQLITE")
    monkeypatch.setenv("MOLECULE_IMPORT_VALUE_SEPARATOR", "|")
    settings = load_settings()
    assert settings.dialect == "sqlite"
    assert settings.value_separator == "|"


def test_yaml_overrides_environment(tmp_path, monkeypatch):
    monkeypatch.setenv("MOLECULE_IMPORT_DELIMITER", ";")
    monkeypatch.setenv("MOLECULE_IMPORT_VALUE_SEPARATOR", "/")
    config_path = tmp_path / "import.yaml"
    config_path.write_text('delimiter: "\\t"\ndb_path: data/molecules.db\n', encoding="utf-8")

    settings = load_settings(config_path)
    assert settings.delimiter == "\t"
    assert settings.db_path == Path("data/molecules.db")


@pytest.mark.parametrize(
    "content",
    ["unknown_key: 1\n", "- a\n- b\n", "dialect: oracle\n", "value_separator: ','\n"],
)
def test_invalid_yaml_config(tmp_path, content):
    config_path = tmp_path / "import.yaml"
    config_path.write_text(content, encoding="utf-8")
    with pytest.raises(ValueError):
        load_settings(config_path)


def test_missing_config_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_settings(tmp_path / "missing.yaml")


def test_cli_writes_script_and_json(tmp_path, monkeypatch):
    monkeypatch.delenv("MOLECULE_IMPORT_DIALECT", raising=False)
    output = tmp_path / "out" / "molecules.sql"
    dump = tmp_path / "out" / "molecules.json"

    assert cli.main([str(SAMPLE_CSV), "--output", str(output), "--dump-json", str(dump)]) == 0

    script = output.read_text(encoding="utf-8")
    assert script.startswith("START TRANSACTION;")
    document = json.loads(dump.read_text(encoding="utf-8"))
    assert len(document["molecules"]) == 4


def test_cli_imports_into_sqlite_and_shows_last(tmp_path, monkeypatch, capsys):
    monkeypatch.setenv("MOLECULE_IMPORT_MANIFEST_PATH", str(tmp_path / "last_import.json"))
    db_path = tmp_path / "molecules.db"

    assert cli.main([str(SAMPLE_CSV), "--db-path", str(db_path)]) == 0
    assert db_path.exists()

    assert cli.main(["--show-last"]) == 0
    shown = capsys.readouterr().out
    assert "molecules.csv" in shown


def test_cli_reports_malformed_file(tmp_path):
    broken = tmp_path / "broken.csv"
    broken.write_text("DCI,MTE\na,abc\n", encoding="utf-8")
    output = tmp_path / "molecules.sql"

    assert cli.main([str(broken), "--output", str(output)]) == 1
    assert not output.exists()


def test_cli_missing_file(tmp_path):
    assert cli.main([str(tmp_path / "nope.csv")]) == 1
