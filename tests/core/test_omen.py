"""Tests for spine_orm.omen (call-site capture)."""

from pathlib import Path

import spine_orm.omen as omen_module
from spine_orm.omen import Omen


def _captured_in_helper() -> Omen:
    return Omen.capture()


class TestOmenCapture:
    """Omen.capture records the caller's stack without library frames."""

    def test_call_site_is_the_calling_function(self):
        omen = Omen.capture()
        assert omen.call_site is not None
        assert omen.call_site.name == "test_call_site_is_the_calling_function"
        assert Path(omen.call_site.filename).name == "test_omen.py"

    def test_innermost_user_frame_wins(self):
        omen = _captured_in_helper()
        assert omen.call_site.name == "_captured_in_helper"

    def test_no_library_frames(self):
        omen = Omen.capture()
        package_dir = str(Path(omen_module.__file__).resolve().parent)
        assert not any(
            str(Path(frame.filename).resolve()).startswith(package_dir) for frame in omen.stack
        )

    def test_describe(self):
        omen = Omen.capture()
        text = omen.describe()
        assert text.startswith("File ")
        assert 'test_omen.py", line ' in text
        assert text.endswith("in test_describe")


class TestOmenAttach:
    """Omen.attach rebases an error onto the captured call site."""

    def test_attach_sets_attribute_and_note(self):
        omen = Omen.capture()
        error = RuntimeError("late failure")
        returned = omen.attach(error)
        assert returned is error
        assert error.omen is omen
        assert len(error.__notes__) == 1
        assert error.__notes__[0].startswith("Query originated at: ")
        assert "test_attach_sets_attribute_and_note" in error.__notes__[0]

    def test_empty_stack(self):
        import traceback

        omen = Omen(stack=traceback.StackSummary.from_list([]))
        assert omen.call_site is None
        assert omen.describe() == "<unknown call site>"
