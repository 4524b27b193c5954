from pathlib import Path

from texcompose.core.diagnostics import (
    BuildLog,
    LoggingStatus,
    LogMessage,
    MessageSeverity,
    NullStatus,
    StatusSink,
)


def test_messages_are_filtered_by_logging_level() -> None:
    log = BuildLog(logging_level="warning")
    log.info("detail")
    log.warning("careful")
    log.error("broken")

    assert [m.text for m in log.get_messages()] == ["careful", "broken"]
    assert len(log.get_messages(use_filters=False)) == 3
    assert log.has_errors()


def test_messages_are_forwarded_to_logging(caplog) -> None:
    log = BuildLog()
    with caplog.at_level("WARNING", logger="texcompose.core.diagnostics"):
        log.show_message(
            LogMessage(
                MessageSeverity.WARNING,
                "Overfull box",
                file_path=Path("/work/a.tex"),
                line_range=(4, 6),
            )
        )

    assert "/work/a.tex:4: Overfull box" in caplog.text


def test_messages_at_source_position() -> None:
    log = BuildLog(logging_level="info")
    inside = LogMessage(MessageSeverity.ERROR, "x", file_path=Path("/a.tex"), line_range=(3, 5))
    elsewhere = LogMessage(MessageSeverity.ERROR, "y", file_path=Path("/b.tex"), line_range=(3, 5))
    log.set_messages([inside, elsewhere])

    assert log.messages_at(Path("/a.tex"), 4) == [inside]
    assert log.messages_at(Path("/a.tex"), 6) == []


def test_serialisation_restores_messages() -> None:
    log = BuildLog(logging_level="info")
    log.show_message(
        LogMessage(
            MessageSeverity.ERROR,
            "Undefined control sequence.",
            file_path=Path("/work/a.tex"),
            line_range=(10, 10),
            log_path=Path("/work/a.log"),
            log_line=42,
        )
    )
    restored = BuildLog(logging_level="info")

    restored.deserialize(log.serialize())

    assert restored.get_messages() == log.get_messages()


def test_visibility_toggles_and_clear() -> None:
    log = BuildLog()
    log.error("x")
    log.toggle()
    assert log.visible is True
    log.hide()
    assert log.visible is False
    log.show()
    assert log.visible is True

    log.clear()
    assert log.get_messages(use_filters=False) == []


def test_logging_status_records_current_state() -> None:
    status = LoggingStatus()
    status.show("Building", "busy")
    assert status.current == ("Building", "busy")
    status.clear()
    assert status.current is None


def test_status_sinks_follow_protocol() -> None:
    null = NullStatus()
    null.show("Building LaTeX")
    null.clear()

    assert isinstance(null, StatusSink)
    assert isinstance(LoggingStatus(), StatusSink)
