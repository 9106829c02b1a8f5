"""Tests for the merge engine and the replace strategy."""

from unittest.mock import patch

import pytest

from minitm.models import EntityKind, LayoutMode
from minitm.reconcile import ImportMode, merge_snapshot, replace_state, import_snapshot, normalize_snapshot
from builders import make_board, make_snapshot, project, task, subtask, ids_of


def assert_unique_ids(state):
    for kind in EntityKind:
        ids = ids_of(state, kind)
        assert len(ids) == len(set(ids)), f"duplicate {kind.name.lower()} identifiers: {ids}"


class TestMergeScenarios:
    """End-to-end merge scenarios."""

    def test_adds_subtask_and_appends_new_task(self, work_board):
        snapshot = make_snapshot(project(
            "p1", "Work",
            task("t1", "Plan", subtask("s1", "Define scope", done=False)),
            task("t2", "Ship"),
        ))

        report = merge_snapshot(work_board, snapshot)

        assert len(work_board.projects) == 1
        work = work_board.projects[0]
        assert (work.id, work.name) == ("p1", "Work")
        assert [(t.id, t.title) for t in work.tasks] == [("t1", "Plan"), ("t2", "Ship")]
        assert [(s.title, s.done) for s in work.tasks[0].subtasks] == [("Define scope", False)]
        assert report.projects_rekeyed == 0
        assert report.projects_matched == 1
        assert report.tasks_added == 1
        assert report.subtasks_added == 1

    def test_completed_subtask_stays_done(self):
        state = make_board(project("p1", "Work", task("t1", "Plan", subtask("s1", "Define scope", done=True))))
        snapshot = make_snapshot(project("p1", "Work", task("t1", "Plan", subtask("s1", "Define scope", done=False))))

        merge_snapshot(state, snapshot)

        assert state.find_subtask("s1")[1].done is True

    def test_incoming_completion_is_applied(self):
        state = make_board(project("p1", "Work", task("t1", "Plan", subtask("s1", "Define scope"))))
        snapshot = make_snapshot(project("p1", "Work", task("t1", "Plan", subtask("s1", "Define scope", done=True))))

        report = merge_snapshot(state, snapshot)

        assert state.find_subtask("s1")[1].done is True
        assert report.subtasks_completed == 1

    @pytest.mark.parametrize("live_done", [True, False])
    @pytest.mark.parametrize("incoming_done", [True, False])
    def test_completion_is_logical_or(self, live_done, incoming_done):
        state = make_board(project("p1", "Work", task("t1", "Plan", subtask("s1", "Scope", done=live_done))))
        snapshot = make_snapshot(project("p1", "Work", task("t1", "Plan", subtask("s1", "Scope", done=incoming_done))))

        merge_snapshot(state, snapshot)

        assert state.find_subtask("s1")[1].done is (live_done or incoming_done)

    def test_live_titles_win_once_matched(self):
        state = make_board(project("p1", "Work", task("t1", "Plan", subtask("s1", "Define scope"))))
        snapshot = make_snapshot(project("p1", "Work", task("t1", "Planning", subtask("s1", "Scope it"))))

        merge_snapshot(state, snapshot)

        _, plan = state.find_task("t1")
        assert plan.title == "Plan"
        assert [s.title for s in plan.subtasks] == ["Define scope"]

    def test_matches_by_normalized_name(self):
        state = make_board(project("p1", "Work", task("t1", "Plan", subtask("s1", "Define scope"))))
        snapshot = make_snapshot(project(
            "p-other", "  WORK ",
            task("t-other", "plan", subtask("s-other", "define scope", done=True)),
        ))

        report = merge_snapshot(state, snapshot)

        assert ids_of(state, EntityKind.PROJECT) == ["p1"]
        assert ids_of(state, EntityKind.TASK) == ["t1"]
        assert ids_of(state, EntityKind.SUBTASK) == ["s1"]
        assert state.find_subtask("s1")[1].done is True
        assert report.changed is True

    def test_new_entities_are_appended_after_existing_order(self):
        state = make_board(
            project("p1", "Work", task("t1", "Plan"), task("t2", "Build")),
            project("p2", "Home"),
        )
        snapshot = make_snapshot(
            project("p3", "Garden"),
            project("p1", "Work", task("t3", "Ship"), task("t1", "Plan")),
        )

        merge_snapshot(state, snapshot)

        assert ids_of(state, EntityKind.PROJECT) == ["p1", "p2", "p3"]
        assert [t.title for t in state.projects[0].tasks] == ["Plan", "Build", "Ship"]


class TestCollisions:
    """Identifier collisions are resolved silently."""

    def test_unrelated_project_with_same_identifier_survives(self):
        state = make_board(project("p1", "Work", task("t1", "Plan", subtask("s1", "Define scope"))))
        snapshot = make_snapshot(project("p1", "Home", task("t1", "Laundry", subtask("s1", "Wash", done=True))))

        report = merge_snapshot(state, snapshot)

        assert [p.name for p in state.projects] == ["Work", "Home"]
        work, home = state.projects
        assert work.id == "p1"
        assert [t.title for t in work.tasks] == ["Plan"]
        assert home.id != "p1"
        assert [t.title for t in home.tasks] == ["Laundry"]
        assert [(s.title, s.done) for s in home.tasks[0].subtasks] == [("Wash", True)]
        assert home.tasks[0].id != "t1"
        assert home.tasks[0].subtasks[0].id != "s1"
        assert report.projects_rekeyed == 1
        assert_unique_ids(state)

    def test_rekeyed_project_still_matches_by_name(self):
        state = make_board(
            project("p1", "Work", task("t1", "Plan")),
            project("p2", "Home", task("t2", "Clean")),
        )
        # p1 belongs to "Work" live, so this "Home" is rekeyed and then found by name.
        snapshot = make_snapshot(project("p1", "Home", task("t1", "Clean"), task("t9", "Cook")))

        report = merge_snapshot(state, snapshot)

        assert ids_of(state, EntityKind.PROJECT) == ["p1", "p2"]
        home = state.projects[1]
        assert [t.title for t in home.tasks] == ["Clean", "Cook"]
        assert home.tasks[0].id == "t2"
        assert home.tasks[1].id not in ("t1", "t9")
        assert report.projects_rekeyed == 1
        assert_unique_ids(state)

    def test_task_identifier_used_elsewhere_is_regenerated(self):
        state = make_board(
            project("p1", "Work", task("t1", "Plan")),
            project("p2", "Home", task("t5", "Clean")),
        )
        snapshot = make_snapshot(project("p1", "Work", task("t5", "Deploy")))

        report = merge_snapshot(state, snapshot)

        work, home = state.projects
        assert [t.title for t in work.tasks] == ["Plan", "Deploy"]
        assert work.tasks[1].id != "t5"
        assert [(t.id, t.title) for t in home.tasks] == [("t5", "Clean")]
        assert report.ids_regenerated == 1
        assert_unique_ids(state)

    def test_subtask_identifier_used_elsewhere_is_regenerated(self):
        state = make_board(project(
            "p1", "Work",
            task("t1", "Plan", subtask("s1", "Define scope")),
            task("t2", "Ship", subtask("s9", "Tag release")),
        ))
        snapshot = make_snapshot(project("p1", "Work", task("t1", "Plan", subtask("s9", "Write brief"))))

        report = merge_snapshot(state, snapshot)

        _, plan = state.find_task("t1")
        assert [s.title for s in plan.subtasks] == ["Define scope", "Write brief"]
        assert plan.subtasks[1].id != "s9"
        assert state.find_subtask("s9")[1].title == "Tag release"
        assert report.ids_regenerated == 1
        assert_unique_ids(state)

    def test_new_project_with_colliding_descendants(self):
        state = make_board(project("p1", "Work", task("t1", "Plan", subtask("s1", "Scope"))))
        snapshot = make_snapshot(project("p2", "Home", task("t1", "Clean", subtask("s1", "Dust"))))

        merge_snapshot(state, snapshot)

        assert ids_of(state, EntityKind.PROJECT) == ["p1", "p2"]
        assert ids_of(state, EntityKind.TASK)[0] == "t1"
        assert ids_of(state, EntityKind.SUBTASK)[0] == "s1"
        assert_unique_ids(state)

    def test_duplicate_identifiers_inside_one_snapshot(self):
        state = make_board()
        snapshot = make_snapshot(
            project("p7", "Alpha", task("t1", "One")),
            project("p7", "Beta", task("t1", "Two")),
        )

        report = merge_snapshot(state, snapshot)

        assert [p.name for p in state.projects] == ["Alpha", "Beta"]
        assert state.projects[0].id == "p7"
        assert report.projects_rekeyed == 1
        assert_unique_ids(state)


class TestMergeProperties:
    """Properties every merge must keep."""

    def _snapshot(self):
        return make_snapshot(
            project("p1", "Work",
                    task("t1", "Plan", subtask("s1", "Define scope", done=True), subtask("s7", "Budget")),
                    task("t8", "Review")),
            project("p9", "Side project", task("t9", "Sketch", subtask("s9", "Wireframe"))),
        )

    def test_idempotent(self, work_board):
        snapshot = self._snapshot()
        merge_snapshot(work_board, snapshot)
        once = work_board.to_dict()

        report = merge_snapshot(work_board, snapshot)

        assert work_board.to_dict() == once
        assert report.changed is False
        assert report.projects_rekeyed == 0
        assert report.projects_matched == 2

    def test_never_deletes(self, work_board):
        before = {kind: set(ids_of(work_board, kind)) for kind in EntityKind}
        merge_snapshot(work_board, self._snapshot())

        for kind in EntityKind:
            assert before[kind] <= set(ids_of(work_board, kind))
        assert len(work_board.projects) == 2

    def test_snapshot_is_not_modified(self, work_board):
        snapshot = make_snapshot(project("p1", "Elsewhere", task("t1", "Other")))
        before = snapshot.to_dict()
        merge_snapshot(work_board, snapshot)
        assert snapshot.to_dict() == before

    def test_layout_untouched_and_selection_kept(self, work_board):
        snapshot = make_snapshot(project("p5", "New"), layout_mode=LayoutMode.GRID)
        merge_snapshot(work_board, snapshot)
        assert work_board.layout_mode == LayoutMode.LIST
        assert work_board.current_project_id == "p1"

    def test_selects_first_project_when_none_selected(self):
        state = make_board()
        merge_snapshot(state, make_snapshot(project("p5", "New"), project("p6", "Other")))
        assert state.current_project_id == "p5"

    def test_failed_merge_leaves_state_untouched(self, work_board):
        before = work_board.to_dict()
        snapshot = make_snapshot(project("p1", "Work", task("t2", "Ship")), project("p3", "Extra"))

        with patch("minitm.reconcile.merge._merge_tasks", side_effect=RuntimeError("boom")):
            with pytest.raises(RuntimeError):
                merge_snapshot(work_board, snapshot)

        assert work_board.to_dict() == before

    def test_messy_import_keeps_identifiers_unique(self, work_board):
        snapshot = normalize_snapshot({"projects": [
            {"id": "p1", "name": "Other", "tasks": [{"id": "t1", "title": "Plan"}]},
            {"id": "p1", "name": "Work", "tasks": [
                {"id": "t1", "title": "Plan", "subtasks": [{"id": "s1", "title": "A"}, {"id": "s1", "title": "B"}]},
                {"id": "t1", "title": "Again"},
            ]},
            {"name": "Work"},
            None,
        ]})

        merge_snapshot(work_board, snapshot)

        assert_unique_ids(work_board)
        assert [p.name for p in work_board.projects] == ["Work", "Other"]


class TestReplace:
    """Replace strategy."""

    def test_empty_snapshot_clears_board(self, work_board):
        report = replace_state(work_board, make_snapshot())

        assert work_board.projects == []
        assert work_board.current_project_id is None
        assert report.mode == ImportMode.REPLACE

    def test_adopts_snapshot_verbatim(self, work_board):
        snapshot = make_snapshot(
            project("p8", "Home", task("t8", "Clean", subtask("s8", "Dust", done=True))),
            project("p9", "Garden"),
            layout_mode=LayoutMode.GRID,
        )

        replace_state(work_board, snapshot)

        assert [p.to_dict() for p in work_board.projects] == [p.to_dict() for p in snapshot.projects]
        assert work_board.layout_mode == LayoutMode.GRID
        assert work_board.current_project_id == "p8"

    def test_duplicate_identifiers_in_snapshot_are_regenerated(self):
        state = make_board()
        snapshot = make_snapshot(project("p1", "Home", task("t1", "Clean"), task("t1", "Cook")))

        report = replace_state(state, snapshot)

        assert state.projects[0].tasks[0].id == "t1"
        assert state.projects[0].tasks[1].id != "t1"
        assert report.ids_regenerated == 1


class TestImportSnapshot:

    def test_dispatches_on_mode(self, work_board):
        snapshot = make_snapshot(project("p5", "New"))

        import_snapshot(work_board, snapshot, "merge")
        assert ids_of(work_board, EntityKind.PROJECT) == ["p1", "p5"]

        import_snapshot(work_board, snapshot, ImportMode.REPLACE)
        assert ids_of(work_board, EntityKind.PROJECT) == ["p5"]

    def test_rejects_unknown_mode(self, work_board):
        with pytest.raises(ValueError):
            import_snapshot(work_board, make_snapshot(), "overwrite")
