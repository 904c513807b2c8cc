"""Tests for ``cap-rover.config.json`` handling, parameter files and the tar packer."""

from __future__ import annotations

import json
import tarfile
from pathlib import Path
from typing import Any

import pytest

from caprover_cli.core.captain_config import CaptainConfig
from caprover_cli.exceptions import ConfigFileError, SourceArchiveError
from caprover_cli.infra.config_file import ParamsFileLoader, find_captain_config, load_captain_config
from caprover_cli.infra.tar_packer import create_tar_archive, find_files
from caprover_cli.utils.constants import CAPTAIN_CONFIG_FILE, CAPTAIN_DEFINITION_FILE


def _raw_config(**overrides: Any) -> dict[str, Any]:
    raw: dict[str, Any] = {
        "definition": {"schemaVersion": 2, "dockerfilePath": "./Dockerfile"},
        "capRoverUrl": "https://captain.example.com",
        "appName": "web",
        "files": {"include": ["src/**", "Dockerfile"]},
        "environments": {"staging": {"appName": "web-staging", "capRoverUrl": ""}},
    }
    raw.update(overrides)
    return raw


# ---------------------------------------------------------------------------
# CaptainConfig
# ---------------------------------------------------------------------------

class TestCaptainConfig:
    def test_base_environment(self) -> None:
        env = CaptainConfig.from_dict(_raw_config()).for_environment()
        assert env.app_name == "web"
        assert env.cap_rover_url == "https://captain.example.com"
        assert env.include == ("src/**", "Dockerfile")

    def test_overlay_skips_falsy_values(self) -> None:
        env = CaptainConfig.from_dict(_raw_config()).for_environment("staging")
        assert env.app_name == "web-staging"
        assert env.cap_rover_url == "https://captain.example.com"

    def test_environment_names(self) -> None:
        assert CaptainConfig.from_dict(_raw_config()).environment_names == ["staging"]

    def test_unknown_environment(self) -> None:
        with pytest.raises(ConfigFileError, match='"prod" does not exist'):
            CaptainConfig.from_dict(_raw_config()).for_environment("prod")

    def test_missing_fields_are_listed(self) -> None:
        raw = _raw_config()
        del raw["appName"]
        del raw["files"]
        with pytest.raises(ConfigFileError, match="appName, files"):
            CaptainConfig.from_dict(raw).for_environment()

    def test_include_must_be_a_list(self) -> None:
        with pytest.raises(ConfigFileError, match="files.include"):
            CaptainConfig.from_dict(_raw_config(files={"include": "src/**"})).for_environment()

    def test_non_object_rejected(self) -> None:
        with pytest.raises(ConfigFileError):
            CaptainConfig.from_dict(["not", "an", "object"])


class TestLoadCaptainConfig:
    def test_found_and_parsed(self, tmp_path: Path) -> None:
        (tmp_path / CAPTAIN_CONFIG_FILE).write_text(json.dumps(_raw_config()))
        assert find_captain_config(tmp_path) == tmp_path / CAPTAIN_CONFIG_FILE
        assert load_captain_config(tmp_path).environment_names == ["staging"]

    def test_missing(self, tmp_path: Path) -> None:
        assert find_captain_config(tmp_path) is None
        with pytest.raises(ConfigFileError, match="No CapRover config file found!"):
            load_captain_config(tmp_path)

    def test_invalid_json(self, tmp_path: Path) -> None:
        (tmp_path / CAPTAIN_CONFIG_FILE).write_text("{oops")
        with pytest.raises(ConfigFileError, match="not a valid JSON"):
            load_captain_config(tmp_path)


# ---------------------------------------------------------------------------
# Parameter files
# ---------------------------------------------------------------------------

class TestParamsFileLoader:
    def test_json(self, tmp_path: Path) -> None:
        path = tmp_path / "params.json"
        path.write_text('{"caproverName": "prod"}')
        assert ParamsFileLoader().load(path) == {"caproverName": "prod"}

    def test_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "params.yaml"
        path.write_text("caproverName: prod\ncaproverApp: web\n")
        assert ParamsFileLoader().load(path) == {"caproverName": "prod", "caproverApp": "web"}

    def test_empty_file(self, tmp_path: Path) -> None:
        path = tmp_path / "params.yaml"
        path.write_text("\n")
        with pytest.raises(ConfigFileError, match="Config file is empty"):
            ParamsFileLoader().load(path)

    def test_list_rejected(self, tmp_path: Path) -> None:
        path = tmp_path / "params.json"
        path.write_text("[1, 2]")
        with pytest.raises(ConfigFileError, match="expected a map"):
            ParamsFileLoader().load(path)

    def test_broken_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "params.yaml"
        path.write_text("key: [unclosed\n")
        with pytest.raises(ConfigFileError, match="Error reading config file"):
            ParamsFileLoader().load(path)


# ---------------------------------------------------------------------------
# Tar packer
# ---------------------------------------------------------------------------

class TestTarPacker:
    @pytest.fixture
    def project(self, tmp_path: Path) -> Path:
        (tmp_path / "src" / "pkg").mkdir(parents=True)
        (tmp_path / "src" / "pkg" / "main.py").write_text("print('hi')\n")
        (tmp_path / "Dockerfile").write_text("FROM python:3.12\n")
        (tmp_path / "notes.txt").write_text("not shipped\n")
        return tmp_path

    def test_find_files_dedupes(self, project: Path) -> None:
        files = find_files(project, ["Dockerfile", "*", "Dockerfile"])
        assert files.count("Dockerfile") == 1
        assert files[0] == "Dockerfile"

    def test_archive_contains_matches_and_definition(self, project: Path) -> None:
        tar_path = create_tar_archive(project, ["src/**", "Dockerfile"], {"schemaVersion": 2})
        with tarfile.open(tar_path) as archive:
            names = set(archive.getnames())
            definition = archive.extractfile(CAPTAIN_DEFINITION_FILE)
            assert definition is not None
            assert json.loads(definition.read()) == {"schemaVersion": 2}
        assert "Dockerfile" in names
        assert "src/pkg/main.py" in names
        assert "notes.txt" not in names
        assert not (project / CAPTAIN_DEFINITION_FILE).exists()

    def test_no_matches(self, project: Path) -> None:
        with pytest.raises(SourceArchiveError, match="No files matched"):
            create_tar_archive(project, ["missing/**"], {"schemaVersion": 2})

    def test_find_files_skips_directories(self, project: Path) -> None:
        files = find_files(project, ["src/**", "*"])
        assert "src/pkg/main.py" in files
        assert "src" not in files
        assert "src/" not in files
        assert "src/pkg" not in files
        assert find_files(project, ["missing/**"]) == []

    def test_archive_has_no_duplicate_members(self, project: Path) -> None:
        tar_path = create_tar_archive(project, ["src/**", "src/pkg/*"], {"schemaVersion": 2})
        with tarfile.open(tar_path) as archive:
            names = archive.getnames()
        assert len(names) == len(set(names))
        assert names.count("src/pkg/main.py") == 1
