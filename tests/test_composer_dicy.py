from pathlib import Path

import pytest

from conftest import FakeDiCy, FakeOpener, make_composer, write

from texcompose.core.composer import DICY_BUILD_COMMANDS, BuildPhase
from texcompose.core.config import ComposerConfig
from texcompose.core.diagnostics import LogMessage, MessageSeverity
from texcompose.core.exceptions import BuildError


DICY_CONFIG = ComposerConfig(use_dicy=True)


def test_initialize_sets_instance_and_user_options(project: Path) -> None:
    document = write(project / "file.tex")
    dicy = FakeDiCy()
    composer = make_composer(document, dicy=dicy)

    root = composer.initialize_dicy(document)

    assert root == document
    assert dicy.calls == [
        ("instance", document, {"severity": "info"}),
        ("user", document, composer.config.dicy_user_options()),
    ]


def test_user_options_are_applied_once(project: Path) -> None:
    document = write(project / "file.tex")
    dicy = FakeDiCy()
    composer = make_composer(document, dicy=dicy)

    composer.initialize_dicy(document)
    composer.initialize_dicy(document, fast_load=True)

    assert dicy.calls[-1] == ("instance", document, {"severity": "info", "validateCache": False})
    assert [call[0] for call in dicy.calls] == ["instance", "user", "instance"]


def test_rebuild_disables_cache_and_clears(project: Path) -> None:
    document = write(project / "file.tex")
    dicy = FakeDiCy()
    composer = make_composer(document, dicy=dicy)
    composer.update_dicy_user_options = False

    composer.initialize_dicy(document, should_rebuild=True)

    assert dicy.calls == [
        ("instance", document, {"severity": "info", "loadCache": False}),
        ("clear", document),
    ]


def test_initialize_follows_root_comment(project: Path) -> None:
    main = write(project / "main.tex")
    chapter = write(project / "chapters" / "one.tex", "% !TEX root = ../main.tex\n")
    composer = make_composer(chapter, dicy=FakeDiCy())

    assert composer.initialize_dicy(chapter) == main


def test_start_without_factory_raises(project: Path) -> None:
    composer = make_composer(write(project / "file.tex"))

    with pytest.raises(BuildError, match="No DiCy engine is configured."):
        composer.start_dicy()


def test_run_opens_non_synctex_targets(project: Path) -> None:
    document = write(project / "file.tex")
    pdf = project / "file.pdf"
    dicy = FakeDiCy(targets=[pdf, project / "file.synctex.gz"])
    opener = FakeOpener()
    composer = make_composer(document, dicy=dicy, opener=opener, line_number=9)

    assert composer.run_dicy(DICY_BUILD_COMMANDS) is True

    assert dicy.calls[-1] == ("run", document, DICY_BUILD_COMMANDS)
    assert opener.calls == [(pdf, document, 9)]
    assert composer.phase is BuildPhase.DONE


def test_failed_run_opens_nothing(project: Path) -> None:
    document = write(project / "file.tex")
    opener = FakeOpener()
    composer = make_composer(
        document, dicy=FakeDiCy(result=False, targets=[project / "file.pdf"]), opener=opener
    )

    assert composer.run_dicy(DICY_BUILD_COMMANDS) is False

    assert opener.calls == []
    assert composer.phase is BuildPhase.FAILED


def test_run_without_opening(project: Path) -> None:
    document = write(project / "file.tex")
    opener = FakeOpener()
    composer = make_composer(document, dicy=FakeDiCy(targets=[project / "file.pdf"]), opener=opener)

    composer.run_dicy(DICY_BUILD_COMMANDS, open_results=False)

    assert opener.calls == []


def test_run_forwards_engine_messages(project: Path) -> None:
    document = write(project / "file.tex")
    message = LogMessage(MessageSeverity.WARNING, "Label(s) may have changed.")
    composer = make_composer(document, dicy=FakeDiCy(messages=[message]))

    composer.run_dicy(DICY_BUILD_COMMANDS)

    assert composer.log.get_messages() == [message]


def test_run_without_editor_path() -> None:
    dicy = FakeDiCy()
    composer = make_composer(None, dicy=dicy)

    assert composer.run_dicy(DICY_BUILD_COMMANDS) is False
    assert dicy.calls == []


def test_build_routes_through_dicy(project: Path) -> None:
    document = write(project / "file.tex")
    dicy = FakeDiCy(targets=[project / "file.pdf"])
    opener = FakeOpener()
    composer = make_composer(document, dicy=dicy, opener=opener, config=DICY_CONFIG)

    assert composer.build() is True

    assert ("run", document, DICY_BUILD_COMMANDS) in dicy.calls
    assert opener.calls == [(project / "file.pdf", document, 1)]
    assert composer.status.current == ("Build succeeded", "success")


def test_rebuild_through_dicy_clears_engine_state(project: Path) -> None:
    document = write(project / "file.tex")
    dicy = FakeDiCy()
    composer = make_composer(document, dicy=dicy, config=DICY_CONFIG)

    composer.build(should_rebuild=True)

    assert ("clear", document) in dicy.calls


def test_failed_dicy_build_reports_status(project: Path) -> None:
    document = write(project / "file.tex")
    composer = make_composer(document, dicy=FakeDiCy(result=False), config=DICY_CONFIG)

    assert composer.build() is False

    assert composer.status.current == ("Build failed", "error")


def test_dicy_build_respects_open_setting(project: Path) -> None:
    document = write(project / "file.tex")
    opener = FakeOpener()
    composer = make_composer(
        document,
        dicy=FakeDiCy(targets=[project / "file.pdf"]),
        opener=opener,
        config=ComposerConfig(use_dicy=True, open_result_after_build=False),
    )

    composer.build()

    assert opener.calls == []


def test_kill_stops_started_engine(project: Path) -> None:
    document = write(project / "file.tex")
    dicy = FakeDiCy()
    composer = make_composer(document, dicy=dicy)
    composer.start_dicy()

    composer.kill()

    assert dicy.killed is True


def test_engine_is_started_once_and_reused(project: Path) -> None:
    document = write(project / "file.tex")
    engines: list[FakeDiCy] = []

    def factory() -> FakeDiCy:
        engines.append(FakeDiCy())
        return engines[-1]

    composer = make_composer(document)
    composer.context.dicy_factory = factory

    assert composer.run_dicy(["build"], open_results=False) is True
    assert composer.run_dicy(["build"], open_results=False) is True

    assert len(engines) == 1
    assert composer.dicy is engines[0]
    assert [call[0] for call in engines[0].calls].count("run") == 2
