import pytest

from builders import make_board, project, task


@pytest.fixture
def work_board():
    """Project "Work" (p1) with task "Plan" (t1) and no subtasks."""
    return make_board(project("p1", "Work", task("t1", "Plan")), current_project_id="p1")


@pytest.fixture
def data_dir(tmp_path):
    path = tmp_path / "data"
    path.mkdir()
    return path
