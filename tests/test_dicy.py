import os
from pathlib import Path
import shutil

from conftest import FIXTURES, FakeProcess, write

from texcompose.adapters.latex.dicy import DiCy, TectonicDiCy
from texcompose.core.diagnostics import MessageSeverity
from texcompose.core.exceptions import ToolNotFoundError
from texcompose.core.process import ProcessResult


def _engine(tmp_path: Path, *results: ProcessResult) -> tuple[TectonicDiCy, FakeProcess]:
    process = FakeProcess(results)
    return TectonicDiCy(process=process, cache_dir=tmp_path / "dicy-cache"), process


def test_engine_satisfies_protocol(tmp_path: Path) -> None:
    engine, _ = _engine(tmp_path)

    assert isinstance(engine, DiCy)


def test_build_command_line(tmp_path: Path, project: Path) -> None:
    document = write(project / "file.tex")
    write(project / "build" / "file.pdf")
    write(project / "build" / "file.synctex.gz")
    engine, process = _engine(tmp_path)
    engine.set_user_options(
        document, {"outputDirectory": "build", "synctex": True, "shellEscape": "enabled"}
    )

    assert engine.run(document, "build") is True

    command = process.commands[0]
    assert command["argv"] == [
        "tectonic",
        "-X",
        "compile",
        str(document),
        "--keep-logs",
        "--keep-intermediates",
        "--outdir",
        str(project / "build"),
        "--synctex",
        "-Z",
        "shell-escape",
    ]
    assert command["cwd"] == project
    assert engine.get_target_paths(document) == [
        project / "build" / "file.pdf",
        project / "build" / "file.synctex.gz",
    ]


def test_instance_options_take_precedence(tmp_path: Path, project: Path) -> None:
    document = write(project / "file.tex")
    write(project / "file.pdf")
    engine, process = _engine(tmp_path)
    engine.set_user_options(document, {"outputDirectory": "build"})
    engine.set_instance_options(document, {"outputDirectory": ""})

    engine.run(document, "build")

    assert process.commands[0]["argv"][-1] == str(project)


def test_non_pdf_output_is_rejected(tmp_path: Path, project: Path) -> None:
    document = write(project / "file.tex")
    engine, process = _engine(tmp_path)
    engine.set_user_options(document, {"outputFormat": "dvi"})

    assert engine.run(document, "build") is False

    assert process.commands == []
    [message] = engine.pop_messages()
    assert message.severity is MessageSeverity.ERROR
    assert message.text == "Tectonic cannot produce 'dvi' output."


def test_failed_compilation_reports_last_stderr_line(tmp_path: Path, project: Path) -> None:
    document = write(project / "file.tex")
    engine, _ = _engine(tmp_path, ProcessResult(1, stderr="note: running\nerror: boom\n"))

    assert engine.run(document, "load", "build", "save") is False

    assert [m.text for m in engine.pop_messages()] == ["Tectonic failed: error: boom"]
    assert engine.pop_messages() == []


def test_missing_executable_is_reported(tmp_path: Path, project: Path) -> None:
    document = write(project / "file.tex")
    engine, process = _engine(tmp_path)
    process.error = ToolNotFoundError("tectonic")

    assert engine.run(document, "build") is False

    assert [m.text for m in engine.pop_messages()] == ["Executable 'tectonic' could not be found."]


def test_unknown_command(tmp_path: Path, project: Path) -> None:
    document = write(project / "file.tex")
    engine, _ = _engine(tmp_path)

    assert engine.run(document, "frobnicate", "build") is False

    assert [m.text for m in engine.pop_messages()] == ["Unknown DiCy command 'frobnicate'."]


def test_log_messages_are_filtered_by_severity(tmp_path: Path, project: Path) -> None:
    document = write(project / "file.tex")
    shutil.copy(FIXTURES / "logs" / "file.log", project / "file.log")
    engine, _ = _engine(tmp_path)

    assert engine.run(document, "log") is False
    assert len(engine.pop_messages()) == 4

    engine.set_instance_options(document, {"severity": "error"})
    engine.run(document, "log")
    messages = engine.pop_messages()
    assert [m.severity for m in messages] == [MessageSeverity.ERROR]
    assert messages[0].file_path == project / "file.tex"


def test_missing_log_is_not_an_error(tmp_path: Path, project: Path) -> None:
    document = write(project / "file.tex")
    engine, _ = _engine(tmp_path)

    assert engine.run(document, "log") is True
    assert engine.pop_messages() == []


def test_targets_survive_through_the_cache(tmp_path: Path, project: Path) -> None:
    document = write(project / "file.tex")
    pdf = write(project / "file.pdf")
    first, _ = _engine(tmp_path)
    assert first.run(document, "load", "build", "save") is True

    second, _ = _engine(tmp_path)
    second.run(document, "load")

    assert second.get_target_paths(document) == [pdf]


def test_stale_cache_is_ignored_unless_validation_is_disabled(tmp_path: Path, project: Path) -> None:
    document = write(project / "file.tex")
    write(project / "file.pdf")
    first, _ = _engine(tmp_path)
    first.run(document, "build", "save")
    stamp = document.stat().st_mtime + 60
    os.utime(document, (stamp, stamp))

    stale, _ = _engine(tmp_path)
    stale.run(document, "load")
    assert stale.get_target_paths(document) == []

    trusting, _ = _engine(tmp_path)
    trusting.set_instance_options(document, {"validateCache": False})
    trusting.run(document, "load")
    assert trusting.get_target_paths(document) == [project / "file.pdf"]


def test_load_cache_can_be_disabled(tmp_path: Path, project: Path) -> None:
    document = write(project / "file.tex")
    write(project / "file.pdf")
    first, _ = _engine(tmp_path)
    first.run(document, "build", "save")

    second, _ = _engine(tmp_path)
    second.set_instance_options(document, {"loadCache": False})
    second.run(document, "load")

    assert second.get_target_paths(document) == []


def test_clear_forgets_targets_and_cache(tmp_path: Path, project: Path) -> None:
    document = write(project / "file.tex")
    write(project / "file.pdf")
    engine, _ = _engine(tmp_path)
    engine.run(document, "build", "save")

    engine.clear(document)

    assert engine.get_target_paths(document) == []
    assert list((tmp_path / "dicy-cache").iterdir()) == []


def test_clean_keeps_targets(tmp_path: Path, project: Path) -> None:
    document = write(project / "file.tex")
    pdf = write(project / "file.pdf")
    aux = write(project / "file.aux")
    minted = write(project / "_minted-file" / "style")
    engine, _ = _engine(tmp_path)
    engine.set_user_options(document, {"cleanPatterns": ["**/*.aux", "**/*.pdf", "/_minted-{jobname}"]})
    engine.run(document, "build")

    assert engine.run(document, "clean") is True

    assert pdf.exists()
    assert document.exists()
    assert not aux.exists()
    assert not minted.parent.exists()

