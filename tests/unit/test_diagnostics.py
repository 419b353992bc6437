"""Unit tests for the diagnostics sink and console observer."""

from __future__ import annotations

from structlog.testing import capture_logs

from translation_host.console import ConsoleMessage, ConsoleObserver, ConsoleService
from translation_host.diagnostics import Diagnostics, debug, get_diagnostics, set_diagnostics


class ExplodingLog:
    def bind(self, **fields):
        return self

    def __getattr__(self, name):
        def emit(*args, **kwargs):
            raise OSError("disk full")

        return emit


class TestDiagnostics:

    def test_levels_map_to_log_levels(self):
        with capture_logs() as logs:
            diag = Diagnostics()
            diag.debug("important", level=1)
            diag.debug("warn", level=2)
            diag.debug("normal")
            diag.debug("verbose", level=5)

        assert [(e["event"], e["log_level"]) for e in logs] == [
            ("important", "error"),
            ("warn", "warning"),
            ("normal", "info"),
            ("verbose", "debug"),
        ]
        assert logs[2]["debug_level"] == 3

    def test_messages_above_max_level_are_dropped(self):
        with capture_logs() as logs:
            diag = Diagnostics(max_level=3)
            diag.debug("kept", level=3)
            diag.debug("dropped", level=4)

        assert [e["event"] for e in logs] == ["kept"]

    def test_disabled(self):
        with capture_logs() as logs:
            Diagnostics(enabled=False).debug("nothing", level=1)

        assert logs == []

    def test_bind_adds_fields(self):
        with capture_logs() as logs:
            Diagnostics().bind(service="surface_pool").debug("bound")

        assert logs[0]["service"] == "surface_pool"

    def test_logging_failure_is_swallowed(self):
        Diagnostics(log=ExplodingLog()).debug("lost", level=1)

    def test_log_error_reports_location(self):
        try:
            raise ValueError("bad input")
        except ValueError as exc:
            error = exc

        with capture_logs() as logs:
            Diagnostics().log_error(error)

        assert logs[0]["log_level"] == "error"
        assert logs[0]["event"].startswith("bad input at ")
        assert "test_diagnostics.py:" in logs[0]["event"]
        assert logs[0]["error_type"] == "ValueError"

    def test_module_level_debug_uses_global_sink(self):
        with capture_logs() as logs:
            set_diagnostics(Diagnostics(max_level=2))
            debug("hidden")
            debug("shown", 2)

        assert [e["event"] for e in logs] == ["shown"]

    def test_global_sink_default(self):
        set_diagnostics(None)
        assert get_diagnostics() is get_diagnostics()


class TestConsoleObserver:

    def _observer(self) -> ConsoleObserver:
        return ConsoleObserver(diagnostics=Diagnostics())

    def test_forwards_errors(self):
        with capture_logs() as logs:
            observer = self._observer()
            forwarded = observer.observe(
                ConsoleMessage(
                    message="TypeError: x is undefined",
                    category="chrome javascript",
                    source_name="translator.js",
                    line_number=42,
                )
            )

        assert forwarded is True
        assert logs[0]["event"] == "TypeError: x is undefined at translator.js:42"

    def test_skips_noisy_categories(self):
        with capture_logs() as logs:
            observer = self._observer()
            css = observer.observe(ConsoleMessage(message="bad css", category="CSS Parser"))
            page = observer.observe(
                ConsoleMessage(message="page error", category="content javascript")
            )

        assert css is False
        assert page is False
        assert logs == []

    def test_skips_warnings(self):
        observer = self._observer()

        assert observer.observe(
            ConsoleMessage(message="deprecated", category="chrome javascript", is_warning=True)
        ) is False

    def test_plain_messages_logged_as_text(self):
        with capture_logs() as logs:
            observer = self._observer()
            forwarded = observer.observe("plain text message")

        assert forwarded is False
        assert logs[0]["event"] == "plain text message"

    def test_custom_skip_list(self):
        observer = ConsoleObserver(skip_categories=["network"], diagnostics=Diagnostics())

        assert observer.observe(ConsoleMessage(message="x", category="network")) is False
        assert observer.observe(ConsoleMessage(message="x", category="CSS Parser")) is True


class TestConsoleService:

    def test_dispatch_to_listeners(self):
        service = ConsoleService()
        received = []

        class Listener:
            def observe(self, message):
                received.append(message)
                return True

        listener = Listener()
        service.register_listener(listener)
        service.register_listener(listener)

        service.log_message(ConsoleMessage(message="m", category="c"))
        assert len(received) == 1

        service.unregister_listener(listener)
        service.log_message(ConsoleMessage(message="m", category="c"))
        assert len(received) == 1

    def test_failing_listener_does_not_stop_others(self):
        service = ConsoleService()
        received = []

        class Broken:
            def observe(self, message):
                raise RuntimeError("broken listener")

        class Working:
            def observe(self, message):
                received.append(message)
                return True

        service.register_listener(Broken())
        service.register_listener(Working())
        service.log_message(ConsoleMessage(message="m", category="c"))

        assert len(received) == 1
