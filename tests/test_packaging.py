"""Sanity checks on pyproject.toml against the source tree."""

from pathlib import Path

import pytest

tomllib = pytest.importorskip("tomllib")

ROOT = Path(__file__).resolve().parent.parent


@pytest.fixture(scope="module")
def project():
    with open(ROOT / "pyproject.toml", "rb") as f:
        return tomllib.load(f)


class TestPyproject:

    def test_declared_packages_exist(self, project):
        setuptools = project["tool"]["setuptools"]
        for package in setuptools["packages"]:
            assert (ROOT / package / "__init__.py").is_file()
        for module in setuptools["py-modules"]:
            assert (ROOT / f"{module}.py").is_file()

    def test_script_points_at_main(self, project):
        assert project["project"]["scripts"]["luskad-mcp"] == "main:main"

    def test_readme_is_a_project_readme(self, project):
        readme = project["project"].get("readme")
        if readme is None:
            return
        assert Path(readme).name.upper().startswith("README")
        assert (ROOT / readme).is_file()
