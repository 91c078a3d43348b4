"""
Smoke tests for the Streamlit app, driven through streamlit's AppTest.
"""

from pathlib import Path

import pytest
from streamlit.testing.v1 import AppTest

from moyenne.backend_logic import MarkEntry
from moyenne.store import StateStore

APP_PATH = Path(__file__).resolve().parent.parent / "app.py"
TIMEOUT = 60


@pytest.fixture
def app(moyenne_home):
    return AppTest.from_file(APP_PATH.as_posix(), default_timeout=TIMEOUT)


def _type(at: AppTest, key: str, value: str) -> AppTest:
    return at.text_input(key=key).input(value).run()


class TestApp:
    """End-to-end behaviour of app.py."""

    def test_first_run_when_no_data_then_empty_average(self, app):
        at = app.run()
        assert not at.exception
        assert at.metric[0].value == "—"
        assert at.text_input(key="td:esp").value == ""

    def test_typing_marks_then_average_and_persisted(self, app, moyenne_home):
        at = app.run()
        _type(at, "td:oral-tech-1", "10")
        _type(at, "exam:oral-tech-1", "14")
        at = _type(at, "exam:esp", "8")

        assert not at.exception
        assert at.metric[0].value == "11 / 20"
        assert at.metric[1].value == "4"

        saved = StateStore.for_key(directory=moyenne_home).load()
        assert saved["oral-tech-1"] == MarkEntry(td="10", exam="14")
        assert saved["esp"] == MarkEntry(exam="8")

    def test_saved_marks_then_inputs_prefilled(self, app, moyenne_home):
        StateStore.for_key(directory=moyenne_home).save({"cpw": MarkEntry(td="12,5")})
        at = app.run()
        assert at.text_input(key="td:cpw").value == "12,5"
        assert at.metric[0].value == "12.5 / 20"

    def test_reset_when_confirmed_then_cleared(self, app, moyenne_home):
        at = app.run()
        at = _type(at, "exam:ethics", "16")
        assert at.metric[0].value == "16 / 20"

        at.button(key="reset").click().run()
        assert at.warning[0].value == "Reset all marks and settings?"
        at.button(key="reset_confirm").click().run()

        assert not at.exception
        assert at.metric[0].value == "—"
        assert at.text_input(key="exam:ethics").value == ""
        assert not StateStore.for_key(directory=moyenne_home).path.exists()

    def test_reset_when_cancelled_then_kept(self, app):
        at = app.run()
        at = _type(at, "exam:ethics", "16")
        at.button(key="reset").click().run()
        at.button(key="reset_cancel").click().run()
        assert at.metric[0].value == "16 / 20"
        assert at.text_input(key="exam:ethics").value == "16"

    def test_apply_import_when_no_file_then_marks_untouched(self, app, moyenne_home):
        StateStore.for_key(directory=moyenne_home).save({"esp": MarkEntry(td="12")})
        at = app.run()
        at.button(key="apply_import").click().run()

        assert not at.exception
        assert not at.error
        assert at.text_input(key="td:esp").value == "12"
        assert StateStore.for_key(directory=moyenne_home).load() == {"esp": MarkEntry(td="12")}
