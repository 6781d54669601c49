import json
from datetime import datetime, timedelta

import pytest
from unittest.mock import MagicMock, patch

from study_planner.app import (
    Planner, SessionExitRequested, build_planner, cmd_add, cmd_add_goal, cmd_add_subject, cmd_csv,
    cmd_dashboard, cmd_delete, cmd_done, cmd_edit, cmd_export, cmd_import, cmd_settings, cmd_subjects,
    cmd_timer,
    session_int_prompt, session_prompt,
)
from study_planner.models import StudySession
from study_planner.records import new_assignment, new_subject
from study_planner.reminders import NullNotifier, ReminderScheduler
from study_planner.timer import StudyTimer

FUTURE = (datetime.now() + timedelta(days=7)).replace(microsecond=0)


@pytest.fixture
def planner(store):
    return Planner(store, StudyTimer(store, autostart_ticker=False), ReminderScheduler(NullNotifier()))


def add_sample(planner, title="Essay", subject="English"):
    a = new_assignment(title, subject, FUTURE.isoformat())
    planner.store.save_assignment(a)
    return a


def test_session_exit_requested_is_exception():
    with pytest.raises(SessionExitRequested):
        raise SessionExitRequested()


def test_session_prompt_raises_on_q():
    with patch("study_planner.app.Prompt.ask", return_value="q"):
        with pytest.raises(SessionExitRequested):
            session_prompt("test prompt")


def test_session_prompt_raises_on_menu():
    with patch("study_planner.app.Prompt.ask", return_value="menu"):
        with pytest.raises(SessionExitRequested):
            session_prompt("test prompt")


def test_session_prompt_returns_normal_input():
    with patch("study_planner.app.Prompt.ask", return_value="hello"):
        result = session_prompt("test prompt")
        assert result == "hello"


def test_session_int_prompt_returns_normal_input():
    with patch("study_planner.app.Prompt.ask", return_value="3"):
        result = session_int_prompt("rate", choices=["1", "2", "3"])
        assert result == 3


def test_cmd_add_saves_valid_assignment(planner):
    answers = ["Essay", "English", FUTURE.strftime("%Y-%m-%d %H:%M"), "high", "90", "Five pages", "draft, essay"]
    with patch("study_planner.app.Prompt.ask", side_effect=answers), \
            patch("study_planner.app.Confirm.ask", return_value=False):
        cmd_add(planner)
    assignments = planner.store.get_assignments()
    assert len(assignments) == 1
    a = assignments[0]
    assert a.title == "Essay"
    assert a.priority == "high"
    assert a.estimated_time == 90
    assert a.tags == ["draft", "essay"]
    assert a.due_date == FUTURE.replace(second=0).isoformat()


def test_cmd_add_drops_duplicate_tags(planner):
    answers = ["Essay", "English", FUTURE.strftime("%Y-%m-%d %H:%M"), "high", "90", "", "draft, essay, draft,"]
    with patch("study_planner.app.Prompt.ask", side_effect=answers), \
            patch("study_planner.app.Confirm.ask", return_value=False):
        cmd_add(planner)
    assert planner.store.get_assignments()[0].tags == ["draft", "essay"]


def test_cmd_add_rejects_invalid_assignment(planner):
    answers = ["", "English", "2000-01-01", "low", "30", "", ""]
    with patch("study_planner.app.Prompt.ask", side_effect=answers), \
            patch("study_planner.app.Confirm.ask", return_value=False):
        cmd_add(planner)
    assert planner.store.get_assignments() == []


def test_cmd_add_can_be_abandoned(planner):
    with patch("study_planner.app.Prompt.ask", side_effect=["Essay", "q"]):
        with pytest.raises(SessionExitRequested):
            cmd_add(planner)
    assert planner.store.get_assignments() == []


def test_cmd_done_toggles_and_stamps(planner):
    add_sample(planner)
    with patch("study_planner.app.Prompt.ask", return_value="1"):
        cmd_done(planner)
    a = planner.store.get_assignments()[0]
    assert a.status == "completed"
    assert a.completed_at is not None


def test_cmd_edit_status_does_not_stamp_completed_at(planner):
    original = add_sample(planner)
    answers = ["1", "95", original.title, original.subject, original.due_date, "medium",
               "completed", "60", "done early", ""]
    with patch("study_planner.app.Prompt.ask", side_effect=answers):
        cmd_edit(planner)
    a = planner.store.get_assignments()[0]
    assert a.status == "completed"
    assert a.completed_at is None
    assert a.grade == 95
    assert a.notes == "done early"


def test_cmd_delete(planner):
    add_sample(planner, "First")
    add_sample(planner, "Second")
    with patch("study_planner.app.Prompt.ask", return_value="1"):
        cmd_delete(planner)
    assert [a.title for a in planner.store.get_assignments()] == ["Second"]


def test_cmd_add_subject(planner):
    answers = ["Math", "Ms. Lee", "4", "red", "91", "", "B12"]
    with patch("study_planner.app.Prompt.ask", side_effect=answers):
        cmd_add_subject(planner)
    subject = planner.store.get_subjects()[0]
    assert subject.name == "Math"
    assert subject.credits == 4
    assert subject.current_grade == 91
    assert subject.target_grade is None
    assert subject.room == "B12"


def test_cmd_add_subject_rejects_bad_credits(planner):
    answers = ["Math", "Ms. Lee", "9", "red", "", "", ""]
    with patch("study_planner.app.Prompt.ask", side_effect=answers):
        cmd_add_subject(planner)
    assert planner.store.get_subjects() == []


def test_cmd_add_goal(planner):
    answers = ["Study 10 hours", "10", "hours", "weekly", "", ""]
    with patch("study_planner.app.Prompt.ask", side_effect=answers):
        cmd_add_goal(planner)
    goal = planner.store.get_study_goals()[0]
    assert goal.title == "Study 10 hours"
    assert goal.target_value == 10
    assert goal.type == "weekly"


def test_cmd_timer_preload_and_back(planner):
    with patch("study_planner.app.Prompt.ask", side_effect=["focus", "back"]):
        cmd_timer(planner)
    assert planner.timer.elapsed == 25 * 60
    assert planner.store.get_study_sessions() == []


def test_cmd_timer_start_reset_commits_session(planner):
    with patch("study_planner.app.Prompt.ask", side_effect=["start", "back"]):
        cmd_timer(planner)
    planner.timer.tick()
    planner.timer.tick()
    with patch("study_planner.app.Prompt.ask", side_effect=["reset", "back"]):
        cmd_timer(planner)
    sessions = planner.store.get_study_sessions()
    assert len(sessions) == 1
    assert sessions[0].duration == 2


def test_cmd_export_and_import(planner, tmp_path):
    add_sample(planner)
    path = tmp_path / "backup.json"
    with patch("study_planner.app.Prompt.ask", return_value=str(path)):
        cmd_export(planner)
    data = json.loads(path.read_text())
    assert data["assignments"][0]["title"] == "Essay"

    planner.store.clear()
    with patch("study_planner.app.Prompt.ask", return_value=str(path)):
        cmd_import(planner)
    assert [a.title for a in planner.store.get_assignments()] == ["Essay"]


def test_cmd_import_bad_file_leaves_store(planner, tmp_path):
    add_sample(planner)
    path = tmp_path / "broken.json"
    path.write_text("{oops")
    with patch("study_planner.app.Prompt.ask", return_value=str(path)):
        cmd_import(planner)
    assert len(planner.store.get_assignments()) == 1


def test_cmd_csv(planner, tmp_path):
    add_sample(planner, "Read ch. 1, 2")
    path = tmp_path / "assignments.csv"
    with patch("study_planner.app.Prompt.ask", side_effect=["assignments", str(path)]):
        cmd_csv(planner)
    lines = path.read_text().split("\n")
    assert lines[0].startswith("id,title,subject,dueDate")
    assert '"Read ch. 1, 2"' in lines[1]


def test_dashboard_and_subjects_render(planner):
    add_sample(planner)
    planner.store.save_subject(new_subject("English", "Mr. Park", current_grade=88))
    cmd_dashboard(planner)
    cmd_subjects(planner)


def test_build_planner_rearms_reminders(tmp_db):
    from study_planner.storage import EntityStore
    store = EntityStore(tmp_db)
    store.save_assignment(new_assignment("Essay", "English", FUTURE.isoformat(), reminder_set=True))
    store.save_assignment(new_assignment("Quiz", "Math", FUTURE.isoformat()))
    planner = build_planner(tmp_db)
    try:
        assert len(planner.reminders.pending) == 1
    finally:
        planner.reminders.cancel_all()


def test_cmd_edit_replaces_tags(planner):
    original = new_assignment("Essay", "English", FUTURE.isoformat(), tags=["draft", "essay"])
    planner.store.save_assignment(original)
    answers = ["1", "", original.title, original.subject, original.due_date, "medium",
               "pending", "60", "", "essay, final"]
    with patch("study_planner.app.Prompt.ask", side_effect=answers):
        cmd_edit(planner)
    assert planner.store.get_assignments()[0].tags == ["essay", "final"]


def test_cmd_done_cancels_pending_reminder(planner):
    a = add_sample(planner)
    planner.reminders = MagicMock()
    with patch("study_planner.app.Prompt.ask", return_value="1"):
        cmd_done(planner)
    planner.reminders.cancel.assert_called_once_with(a.id)
    planner.reminders.schedule.assert_not_called()


def test_cmd_done_reopen_rearms_reminder(planner):
    a = new_assignment("Essay", "English", FUTURE.isoformat(), status="completed", reminder_set=True)
    planner.store.save_assignment(a)
    planner.reminders = MagicMock()
    with patch("study_planner.app.Prompt.ask", return_value="1"):
        cmd_done(planner)
    assert planner.store.get_assignments()[0].status == "pending"
    planner.reminders.schedule.assert_called_once()


def test_cmd_settings_clear_all_data(planner):
    add_sample(planner)
    planner.store.save_subject(new_subject("English", "Mr. Park"))
    with patch("study_planner.app.Confirm.ask", side_effect=[False, True, True]):
        cmd_settings(planner)
    assert planner.store.get_assignments() == []
    assert planner.store.get_subjects() == []


def test_cmd_settings_clear_needs_second_confirmation(planner):
    add_sample(planner)
    with patch("study_planner.app.Confirm.ask", side_effect=[False, True, False]):
        cmd_settings(planner)
    assert len(planner.store.get_assignments()) == 1


def test_subjects_render_with_linked_study_time(planner):
    a = add_sample(planner)
    planner.store.save_subject(new_subject("English", "Mr. Park"))
    planner.store.save_study_session(
        StudySession(id="s1", date=datetime.now().isoformat(), assignment_id=a.id, duration=1800)
    )
    cmd_subjects(planner)
