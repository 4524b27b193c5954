from pathlib import Path

import pytest

from conftest import FakeBuilder, FakeDiCy, FakeOpener, make_composer, write

from texcompose.core.composer import DICY_CLEAN_COMMANDS
from texcompose.core.config import ComposerConfig


PATTERNS = ["**/*.aux", "/_minted-{jobname}"]


def _clean_config(**overrides) -> ComposerConfig:
    return ComposerConfig(clean_patterns=PATTERNS, **overrides)


def test_clean_removes_matching_files_only(project: Path) -> None:
    document = write(project / "foo.tex", "\\documentclass{article}\n")
    write(project / "foo.aux")
    write(project / "foo.log")
    write(project / "_minted-foo" / "default.pygstyle")
    composer = make_composer(document, builder=FakeBuilder(), config=_clean_config())

    assert composer.clean() is True

    assert not (project / "foo.aux").exists()
    assert (project / "foo.log").exists()
    assert not (project / "_minted-foo").exists()
    assert document.exists()


def test_clean_removes_nested_matches(project: Path) -> None:
    document = write(project / "foo.tex")
    write(project / "chapters" / "intro.aux")
    write(project / "chapters" / "_minted-foo" / "x")
    composer = make_composer(document, builder=FakeBuilder(), config=_clean_config())

    composer.clean()

    assert not (project / "chapters" / "intro.aux").exists()
    assert (project / "chapters" / "_minted-foo").exists()


@pytest.mark.parametrize("output_directory", ["build", ".build", "../build", "ABSOLUTE"])
def test_clean_honours_output_directory(project: Path, output_directory: str) -> None:
    if output_directory == "ABSOLUTE":
        output_directory = str(project.parent / "absolute-build")
    document = write(project / "foo.tex")
    output_root = Path(output_directory)
    if not output_root.is_absolute():
        output_root = (project / output_root).resolve()
    generated = write(output_root / "foo.aux")
    kept = write(output_root / "foo.pdf")
    composer = make_composer(
        document,
        builder=FakeBuilder(),
        config=_clean_config(output_directory=output_directory),
    )

    composer.clean()

    assert not generated.exists()
    assert kept.exists()


def test_clean_substitutes_each_job_name(project: Path) -> None:
    document = write(project / "foo.tex", "% !TEX jobnames = bar, wibble\n")
    for name in ("foo", "bar", "wibble"):
        write(project / f"_minted-{name}" / "style")
    composer = make_composer(document, builder=FakeBuilder(), config=_clean_config())

    composer.clean()

    assert (project / "_minted-foo").exists()
    assert not (project / "_minted-bar").exists()
    assert not (project / "_minted-wibble").exists()


def test_clean_ignores_non_tex_documents(project: Path) -> None:
    document = write(project / "foo.txt")
    aux = write(project / "foo.aux")
    builder = FakeBuilder()
    composer = make_composer(document, builder=builder, config=_clean_config())

    assert composer.clean() is False

    assert aux.exists()
    assert builder.parse_calls == 0


def test_clean_without_patterns_keeps_everything(project: Path) -> None:
    document = write(project / "foo.tex")
    aux = write(project / "foo.aux")
    composer = make_composer(document, builder=FakeBuilder(), config=ComposerConfig(clean_patterns=[]))

    assert composer.clean() is True
    assert aux.exists()


def test_generated_file_list_includes_database_entries(project: Path) -> None:
    document = write(project / "foo.tex")
    write(project / "foo.aux")
    write(project / "foobar.log")

    class DatabaseBuilder(FakeBuilder):
        def parse_log_and_fdb_files(self, job_state):
            super().parse_log_and_fdb_files(job_state)
            job_state.file_database = {
                "pdflatex": {"source": [], "generated": ["out/../extra.idx", "/abs/file.aux"]}
            }

    builder = DatabaseBuilder()
    composer = make_composer(document, builder=builder)
    state, _ = composer.initialize_build(document)

    files = composer.get_generated_file_list(builder, state.job_states[0])

    assert files == {
        project / "foo.tex",
        project / "foo.aux",
        project / "foobar.log",
        project / "extra.idx",
        Path("/abs/file.aux"),
    }


def test_clean_through_dicy(project: Path) -> None:
    document = write(project / "foo.tex")
    dicy = FakeDiCy(result=True, targets=[project / "foo.pdf"])
    opener = FakeOpener()
    composer = make_composer(
        document, dicy=dicy, opener=opener, config=ComposerConfig(use_dicy=True)
    )

    assert composer.clean() is True

    assert dicy.calls[-1] == ("run", document, DICY_CLEAN_COMMANDS)
    assert opener.calls == []
