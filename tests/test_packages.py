from __future__ import annotations

import shutil
import zipfile
from pathlib import Path

import pytest

from skillshelf import packages
from skillshelf.discovery import read_skill
from skillshelf.errors import AlreadyExists, NotFound, ReadOnlySkill
from skillshelf.locations import Personal, Roots, SecondarySystem


def _source_skill(tmp_path: Path, make_skill) -> Path:
    source = make_skill(tmp_path / "downloads", "pdf-tools", "---\ndescription: PDFs\n---\n\nUse it\n")
    (source / "scripts").mkdir()
    _ = (source / "scripts" / "fill.py").write_text("print('x')\n", encoding="utf-8")
    return source


def test_preview_directory(tmp_path: Path, make_skill) -> None:
    package = packages.preview_directory(_source_skill(tmp_path, make_skill))

    assert package.name == "pdf-tools"
    assert package.metadata.description == "PDFs"
    assert package.body == "Use it\n"
    assert [f.relative_path for f in package.supporting_files] == ["scripts", "scripts/fill.py"]


def test_preview_requires_skill_file(tmp_path: Path) -> None:
    with pytest.raises(NotFound):
        packages.preview_directory(tmp_path)


def test_commit_copies_under_new_name(tmp_path: Path, roots: Roots, make_skill) -> None:
    source = _source_skill(tmp_path, make_skill)
    package = packages.preview(source)

    target = packages.commit(package, "pdf", Personal(), roots, ops_log=tmp_path / "ops.log")

    assert target == roots.personal_skills / "pdf"
    assert (target / "scripts" / "fill.py").is_file()
    assert (source / "SKILL.md").is_file()
    assert read_skill(target, Personal()).metadata.description == "PDFs"
    assert '"op": "skill_import"' in (tmp_path / "ops.log").read_text(encoding="utf-8")

    with pytest.raises(AlreadyExists):
        packages.commit(package, "pdf", Personal(), roots)


def test_commit_into_read_only_location_fails(tmp_path: Path, roots: Roots, make_skill) -> None:
    package = packages.preview(_source_skill(tmp_path, make_skill))
    with pytest.raises(ReadOnlySkill):
        packages.commit(package, "pdf", SecondarySystem(path=str(roots.secondary_system_skills)), roots)


@pytest.mark.skipif(shutil.which("unzip") is None, reason="unzip not installed")
def test_zip_import_and_cleanup(tmp_path: Path, roots: Roots, make_skill) -> None:
    source = _source_skill(tmp_path, make_skill)
    archive = tmp_path / "pdf-tools.zip"
    with zipfile.ZipFile(archive, "w") as zf:
        for path in sorted(source.rglob("*")):
            zf.write(path, path.relative_to(source.parent).as_posix())

    package = packages.preview(archive)
    assert package.name == "pdf-tools"
    assert package.source_directory is not None
    extracted = package.source_directory

    target = packages.commit(package, "pdf-tools", Personal(), roots)
    packages.cleanup_if_temporary(package)

    assert (target / "scripts" / "fill.py").is_file()
    assert not extracted.exists()


def test_cleanup_leaves_regular_directories_alone(tmp_path: Path, make_skill) -> None:
    source = _source_skill(tmp_path, make_skill)
    packages.cleanup_if_temporary(packages.preview(source))
    assert source.is_dir()


def test_export_skill(tmp_path: Path, make_skill) -> None:
    skill_dir = _source_skill(tmp_path, make_skill)
    skill = read_skill(skill_dir, Personal())
    destination = tmp_path / "export"

    target = packages.export_skill(skill, destination)

    assert target == destination / "pdf-tools"
    assert (target / "SKILL.md").is_file()
    assert (target / "scripts" / "fill.py").is_file()
    with pytest.raises(AlreadyExists):
        packages.export_skill(skill, destination)
