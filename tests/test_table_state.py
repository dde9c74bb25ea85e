import unittest

from workspace_cli_manager.models import DEFAULT_PROFILE_ID, Profile, ProfileAuth
from workspace_cli_manager.profile_list import PROFILE_COLUMNS, profile_rows
from workspace_cli_manager.table_state import KeyEvent, ResizeEvent, SessionState, TableSession


def _rows():
    profiles = [
        Profile(id="a", name="Alpha", hostname="a.example.com", port=22, auth=ProfileAuth(user="u", password="pw")),
        Profile(id="b", name="Beta", hostname="b.example.com", port=22, auth=ProfileAuth(user="u", private_key_path="/k")),
        Profile(id=DEFAULT_PROFILE_ID, name="Default"),
    ]
    return profile_rows(profiles, "b")


def _session(width: int = 200, selectable: bool = True, active_index: int = 1) -> TableSession:
    rows, _ = _rows()
    return TableSession(PROFILE_COLUMNS, rows, width=width, active_index=active_index, active_id="b", selectable=selectable)


def _press(session: TableSession, *keys: str) -> None:
    for k in keys:
        session.handle(KeyEvent(k))


class TestTableSessionTransitions(unittest.TestCase):
    def test_selectable_session_starts_browsing_on_active_row(self) -> None:
        s = _session()
        self.assertEqual(s.state, SessionState.BROWSING)
        self.assertTrue(s.focused)
        self.assertEqual(s.cursor.selected, 1)
        self.assertFalse(s.done)

    def test_non_selectable_session_is_idle_and_done(self) -> None:
        s = _session(selectable=False)
        self.assertEqual(s.state, SessionState.IDLE)
        self.assertTrue(s.done)
        self.assertEqual(s.selection, "b")
        # Terminated sessions ignore further input.
        self.assertTrue(s.handle(KeyEvent("q")))
        self.assertEqual(s.selection, "b")

    def test_down_then_enter_confirms_default(self) -> None:
        s = _session()
        _press(s, "down", "enter")
        self.assertEqual(s.state, SessionState.CONFIRMED)
        self.assertEqual(s.selection, DEFAULT_PROFILE_ID)

    def test_quit_keys_cancel_from_browsing_and_unfocused(self) -> None:
        for key in ("q", "ctrl+c"):
            s = _session()
            _press(s, key)
            self.assertEqual(s.state, SessionState.CANCELLED)
            self.assertEqual(s.selection, "")

            s = _session()
            _press(s, "esc", key)
            self.assertEqual(s.state, SessionState.CANCELLED)
            self.assertEqual(s.selection, "")

    def test_esc_toggles_focus(self) -> None:
        s = _session()
        _press(s, "esc")
        self.assertEqual(s.state, SessionState.UNFOCUSED)
        self.assertFalse(s.focused)
        _press(s, "esc")
        self.assertEqual(s.state, SessionState.BROWSING)

    def test_cursor_is_frozen_while_unfocused(self) -> None:
        s = _session()
        _press(s, "esc", "down", "up", "end", "home")
        self.assertEqual(s.cursor.selected, 1)

    def test_confirm_while_unfocused_uses_frozen_cursor(self) -> None:
        s = _session(active_index=0)
        _press(s, "esc", "down", "enter")
        self.assertEqual(s.state, SessionState.CONFIRMED)
        self.assertEqual(s.selection, "a")

    def test_confirm_from_every_row(self) -> None:
        rows, _ = _rows()
        for i, row in enumerate(rows):
            s = _session(active_index=0)
            _press(s, *(["down"] * i), "enter")
            self.assertEqual(s.selection, row[0])

    def test_movement_is_clamped(self) -> None:
        s = _session(active_index=0)
        _press(s, "up", "k")
        self.assertEqual(s.cursor.selected, 0)
        _press(s, "down", "j", "down", "down")
        self.assertEqual(s.cursor.selected, 2)
        _press(s, "home")
        self.assertEqual(s.cursor.selected, 0)
        _press(s, "G")
        self.assertEqual(s.cursor.selected, 2)
        _press(s, "g")
        self.assertEqual(s.cursor.selected, 0)
        _press(s, "pgdown")
        self.assertEqual(s.cursor.selected, 2)
        _press(s, "pgup")
        self.assertEqual(s.cursor.selected, 0)
        _press(s, "ctrl+d")
        self.assertEqual(s.cursor.selected, 1)
        _press(s, "u")
        self.assertEqual(s.cursor.selected, 0)

    def test_unknown_keys_are_ignored(self) -> None:
        s = _session()
        _press(s, "x", "tab", "left")
        self.assertEqual(s.state, SessionState.BROWSING)
        self.assertEqual(s.cursor.selected, 1)

    def test_confirm_on_empty_table_is_a_no_op(self) -> None:
        s = TableSession(PROFILE_COLUMNS, [], width=200, selectable=True)
        _press(s, "enter")
        self.assertEqual(s.state, SessionState.BROWSING)
        _press(s, "q")
        self.assertEqual(s.selection, "")

    def test_unsupported_event_type_raises(self) -> None:
        s = _session()
        with self.assertRaises(TypeError):
            s.handle("enter")  # type: ignore[arg-type]

    def test_active_index_out_of_range_is_clamped(self) -> None:
        s = _session(active_index=10)
        self.assertEqual(s.cursor.selected, 2)


class TestTableSessionResize(unittest.TestCase):
    def test_resize_keeps_cursor_and_reprojects_from_full_rows(self) -> None:
        rows, _ = _rows()
        s = TableSession(PROFILE_COLUMNS, rows, width=60, active_index=2, selectable=True)
        self.assertEqual(len(s.visible_columns), 4)

        s.handle(ResizeEvent(width=30))
        self.assertEqual(len(s.visible_columns), 2)
        self.assertEqual(s.cursor.selected, 2)
        self.assertEqual(s.state, SessionState.BROWSING)
        self.assertEqual(s.visible_rows, tuple(r[:2] for r in rows))
        # Full rows are untouched by the projection.
        self.assertEqual(s.rows, tuple(rows))

        # Growing again restores columns that were cut, no double truncation.
        s.handle(ResizeEvent(width=200))
        self.assertEqual(len(s.visible_columns), 8)
        self.assertEqual(s.visible_rows, tuple(rows))

    def test_resize_preserves_unfocused_state(self) -> None:
        s = _session()
        _press(s, "esc")
        s.handle(ResizeEvent(width=25))
        self.assertEqual(s.state, SessionState.UNFOCUSED)
        self.assertEqual([c.title for c in s.visible_columns], ["Id"])
        self.assertTrue(all(len(r) == 1 for r in s.visible_rows))

    def test_confirm_after_shrinking_to_zero_columns(self) -> None:
        s = _session()
        s.handle(ResizeEvent(width=3))
        self.assertEqual(s.visible_columns, ())
        self.assertEqual(s.frame_height, 1)
        _press(s, "enter")
        self.assertEqual(s.selection, "b")

    def test_frame_height_counts_rows_and_chrome(self) -> None:
        s = _session()
        self.assertEqual(s.frame_height, 3 + 4)


def _tall_rows(n: int):
    return [(f"p{i}", f"Profile {i}", "false", "-", "-", "-", "-", "-") for i in range(n)]


class TestTableSessionViewport(unittest.TestCase):
    def test_unbounded_height_shows_every_row(self) -> None:
        s = TableSession(PROFILE_COLUMNS, _tall_rows(30), width=200)
        self.assertEqual(s.view_height, 30)
        self.assertEqual(s.frame_height, 30 + 4)

    def test_short_terminal_limits_drawn_rows(self) -> None:
        s = TableSession(PROFILE_COLUMNS, _tall_rows(30), width=200, height=10)
        self.assertEqual(s.view_height, 6)
        self.assertEqual(s.frame_height, 10)
        top, rows = s.window()
        self.assertEqual((top, [r[0] for r in rows]), (0, ["p0", "p1", "p2", "p3", "p4", "p5"]))

    def test_cursor_row_stays_in_view(self) -> None:
        s = TableSession(PROFILE_COLUMNS, _tall_rows(30), width=200, height=10)
        for _ in range(8):
            _press(s, "down")
            top, rows = s.window()
            self.assertTrue(top <= s.cursor.selected < top + len(rows))
        self.assertEqual(s.window()[0], 3)

        _press(s, "G")
        top, rows = s.window()
        self.assertEqual((top, rows[-1][0]), (24, "p29"))

        _press(s, "g")
        self.assertEqual(s.window()[0], 0)

    def test_page_moves_by_visible_rows(self) -> None:
        s = TableSession(PROFILE_COLUMNS, _tall_rows(30), width=200, height=10, active_index=0)
        _press(s, "pgdown")
        self.assertEqual(s.cursor.selected, 6)
        _press(s, "ctrl+d")
        self.assertEqual(s.cursor.selected, 9)

    def test_active_row_starts_in_view(self) -> None:
        s = TableSession(PROFILE_COLUMNS, _tall_rows(30), width=200, height=10, active_index=20)
        top, rows = s.window()
        self.assertIn("p20", [r[0] for r in rows])

    def test_resize_height_rescrolls(self) -> None:
        s = TableSession(PROFILE_COLUMNS, _tall_rows(30), width=200, height=40, active_index=20)
        self.assertEqual(s.window()[0], 0)
        s.handle(ResizeEvent(width=200, height=8))
        self.assertEqual(s.view_height, 4)
        top, rows = s.window()
        self.assertTrue(top <= 20 < top + len(rows))
        # A resize without a height keeps the last known one.
        s.handle(ResizeEvent(width=100))
        self.assertEqual(s.view_height, 4)

    def test_tiny_terminal_still_shows_cursor_row(self) -> None:
        s = TableSession(PROFILE_COLUMNS, _tall_rows(5), width=200, height=2, active_index=3)
        self.assertEqual(s.view_height, 1)
        self.assertEqual(s.window(), (3, (_tall_rows(5)[3],)))


if __name__ == "__main__":
    unittest.main()
