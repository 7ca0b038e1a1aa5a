import asyncio
import uuid
from collections import Counter
from datetime import datetime, timezone

import pytest

from tracker.client.api import APIError
from tracker.client.models import Comment, Project, Task, TeamMember
from tracker.client.store import TrackerStore
from tracker.core.progress import ProjectStatus

DELAY = 0.02


class FakeAPI:
    """内存版接口：记录调用次数，可按方法名注入失败"""

    def __init__(self):
        self.projects = {}
        self.tasks = {}
        self.team = []
        self.calls = Counter()
        self.updates = []
        self.failing = set()
        # 设置后 create_task 会等待该事件，用于模拟进行中的创建请求
        self.create_gate = None
        self.create_started = None

    def _check(self, method):
        self.calls[method] += 1
        if method in self.failing:
            raise APIError(500, f"{method} failed")

    def seed_project(self, name, auto_progress=True, progress=0):
        project = Project(id=str(uuid.uuid4()), name=name, auto_progress=auto_progress, progress=progress)
        self.projects[project.id] = project
        self.tasks[project.id] = []
        return project

    def seed_task(self, project_id, name, completed=False):
        task = Task(id=str(uuid.uuid4()), name=name, completed=completed, project_id=project_id)
        self.tasks[project_id].append(task)
        return task

    async def list_projects(self):
        self._check("list_projects")
        await asyncio.sleep(0)
        return sorted(self.projects.values(), key=lambda p: p.name)

    async def list_team(self):
        self._check("list_team")
        return list(self.team)

    async def list_tasks(self, project_id):
        self._check("list_tasks")
        await asyncio.sleep(0)
        return list(self.tasks.get(project_id, []))

    async def create_project(self, name, tags=None, priority=None, deadline=None):
        self._check("create_project")
        project = Project(id=str(uuid.uuid4()), name=name, tags=tuple(tags or ()), tasks_loaded=True)
        self.projects[project.id] = project
        self.tasks[project.id] = []
        return project

    async def update_project(self, project_id, **fields):
        self._check("update_project")
        self.updates.append(fields)
        project = self.projects[project_id].model_copy(update=fields)
        self.projects[project_id] = project
        return project.model_copy(update={"tasks": tuple(self.tasks[project_id]), "tasks_loaded": True})

    async def delete_project(self, project_id):
        self._check("delete_project")
        self.projects.pop(project_id, None)

    async def create_task(self, project_id, name, **fields):
        self._check("create_task")
        if self.create_gate is not None:
            self.create_started.set()
            await self.create_gate.wait()
        task = Task(
            id=str(uuid.uuid4()), name=name, project_id=project_id,
            assignee_id=fields.get("assignee_id"), status=fields.get("status") or "active",
            description=fields.get("description"),
        )
        self.tasks[project_id].append(task)
        return task

    async def update_task(self, project_id, task_id, **fields):
        self._check("update_task")
        tasks = self.tasks[project_id]
        for index, task in enumerate(tasks):
            if task.id == task_id:
                tasks[index] = Task.model_validate({**task.model_dump(), **fields})
                return tasks[index]
        raise APIError(404, "Task not found")

    async def delete_task(self, project_id, task_id):
        self._check("delete_task")
        self.tasks[project_id] = [t for t in self.tasks[project_id] if t.id != task_id]

    async def add_comment(self, project_id, task_id, text, author_id=None):
        self._check("add_comment")
        return Comment(id=str(uuid.uuid4()), text=text, created_at=datetime.now(timezone.utc))

    async def delete_comment(self, project_id, task_id, comment_id):
        self._check("delete_comment")

    async def create_team_member(self, name):
        self._check("create_team_member")
        member = TeamMember(id=str(uuid.uuid4()), name=name)
        self.team.append(member)
        return member


@pytest.fixture
def api():
    return FakeAPI()


@pytest.fixture
async def store(api):
    store = TrackerStore(api, progress_delay=DELAY, create_task_delay=DELAY, assign_delay=DELAY)
    yield store
    await store.close()


async def test_load_all_replaces_cache(api, store):
    api.seed_project("Beta")
    api.seed_project("Alpha")
    api.team.append(TeamMember(id="m1", name="Bob"))

    assert store.initial_load is False
    await store.load_all()

    assert [p.name for p in store.state.projects] == ["Alpha", "Beta"]
    assert [m.name for m in store.state.team] == ["Bob"]
    assert store.initial_load is True
    assert store.error is None
    assert store.loading is False


async def test_load_all_failure_sets_error(api, store):
    api.seed_project("Alpha")
    api.failing.add("list_team")

    await store.load_all()

    assert store.state.projects == ()
    assert store.error
    assert store.initial_load is True


async def test_progress_debounce_coalesces_to_one_write(api, store):
    project = api.seed_project("Launch", auto_progress=False)
    await store.load_all()

    await store.set_project_progress(project.id, 10)
    await store.set_project_progress(project.id, 20)
    assert store.get_project(project.id).progress == 20
    assert api.calls["update_project"] == 0

    await store.drain()
    assert api.calls["update_project"] == 1
    assert api.updates == [{"progress": 20}]
    assert store.get_project(project.id).progress == 20


async def test_progress_write_failure_restores_previous_value(api, store):
    project = api.seed_project("Launch", auto_progress=False, progress=30)
    await store.load_all()
    api.failing.add("update_project")

    await store.set_project_progress(project.id, 140)
    assert store.get_project(project.id).progress == 100

    await store.drain()
    assert store.get_project(project.id).progress == 30


async def test_add_task_replaces_placeholder_in_place(api, store):
    project = api.seed_project("Launch")
    existing = api.seed_task(project.id, "Existing", completed=True)
    await store.load_all()
    await store.ensure_tasks_loaded(project.id)

    temp_id = await store.add_task(project.id, "  ", status="bogus")
    cached = store.get_project(project.id)
    assert temp_id.startswith("temp_")
    assert cached.tasks[0].id == temp_id
    assert cached.tasks[0].name == "Untitled Task"
    assert cached.tasks[0].status.value == "active"
    assert cached.progress == 50

    await store.drain()
    cached = store.get_project(project.id)
    assert api.calls["create_task"] == 1
    assert [t.id for t in cached.tasks][1] == existing.id
    assert not cached.tasks[0].is_placeholder
    assert cached.tasks[0].name == "Untitled Task"
    assert cached.progress == 50


async def test_add_task_failure_removes_placeholder(api, store):
    project = api.seed_project("Launch")
    await store.load_all()
    api.failing.add("create_task")

    await store.add_task(project.id, "Doomed")
    assert len(store.get_project(project.id).tasks) == 1

    await store.drain()
    cached = store.get_project(project.id)
    assert cached.tasks == ()
    assert cached.progress == 0


async def test_toggle_task_recomputes_and_rolls_back(api, store):
    project = api.seed_project("Launch")
    first = api.seed_task(project.id, "A")
    api.seed_task(project.id, "B")
    await store.load_all()
    await store.load_project_tasks(project.id)

    await store.toggle_task(project.id, first.id)
    assert store.get_task(project.id, first.id).completed is True
    assert store.get_project(project.id).progress == 50

    before = store.state
    api.failing.add("update_task")
    await store.toggle_task(project.id, first.id)
    assert store.state == before
    assert store.get_task(project.id, first.id).completed is True


async def test_toggle_uncached_task_marks_completed_and_reloads(api, store):
    project = api.seed_project("Launch")
    await store.load_all()
    task = api.seed_task(project.id, "Hidden")

    await store.toggle_task(project.id, task.id)

    assert api.tasks[project.id][0].completed is True
    assert store.get_task(project.id, task.id).completed is True


async def test_lazy_loading_distinguishes_empty_from_unloaded(api, store):
    project = api.seed_project("Empty")
    await store.load_all()
    assert store.get_project(project.id).tasks_loaded is False

    await store.ensure_tasks_loaded(project.id)
    await store.ensure_tasks_loaded(project.id)
    assert api.calls["list_tasks"] == 1
    assert store.get_project(project.id).tasks == ()
    assert store.get_project(project.id).tasks_loaded is True


async def test_failed_task_load_leaves_marker_unset(api, store):
    project = api.seed_project("Launch")
    await store.load_all()
    api.failing.add("list_tasks")

    await store.load_project_tasks(project.id)
    assert store.get_project(project.id).tasks_loaded is False

    api.failing.clear()
    await store.ensure_tasks_loaded(project.id)
    assert api.calls["list_tasks"] == 2
    assert store.get_project(project.id).tasks_loaded is True


async def test_delete_project_rolls_back_on_failure(api, store):
    project = api.seed_project("Launch")
    api.seed_project("Other")
    await store.load_all()

    api.failing.add("delete_project")
    await store.delete_project(project.id)
    assert [p.name for p in store.state.projects] == ["Launch", "Other"]

    api.failing.clear()
    await store.delete_project(project.id)
    assert [p.name for p in store.state.projects] == ["Other"]


async def test_delete_task_recomputes_and_restores(api, store):
    project = api.seed_project("Launch")
    api.seed_task(project.id, "Done", completed=True)
    todo = api.seed_task(project.id, "Todo")
    await store.load_all()
    await store.load_project_tasks(project.id)

    api.failing.add("delete_task")
    await store.delete_task(project.id, todo.id)
    assert len(store.get_project(project.id).tasks) == 2

    api.failing.clear()
    await store.delete_task(project.id, todo.id)
    cached = store.get_project(project.id)
    assert [t.name for t in cached.tasks] == ["Done"]
    assert cached.progress == 100


async def test_assignment_failure_keeps_local_value(api, store):
    project = api.seed_project("Launch")
    task = api.seed_task(project.id, "A")
    await store.load_all()
    await store.load_project_tasks(project.id)

    api.failing.add("update_task")
    await store.assign_task(project.id, task.id, "m1")
    await store.assign_task(project.id, task.id, "m2")
    await store.drain()

    assert api.calls["update_task"] == 1
    assert store.get_task(project.id, task.id).assignee_id == "m2"


async def test_toggle_project_auto_uses_canonical_response(api, store):
    project = api.seed_project("Launch", auto_progress=False, progress=80)
    api.seed_task(project.id, "A", completed=True)
    await store.load_all()

    async def recompute(project_id, **fields):
        api.calls["update_project"] += 1
        return api.projects[project_id].model_copy(update={
            "auto_progress": True, "progress": 100,
            "tasks": tuple(api.tasks[project_id]), "tasks_loaded": True,
        })

    api.update_project = recompute
    await store.toggle_project_auto(project.id, True)

    cached = store.get_project(project.id)
    assert cached.auto_progress is True
    assert cached.progress == 100
    assert cached.tasks_loaded is True
    assert store.project_status(project.id) == ProjectStatus.COMPLETED


async def test_comments_append_and_delete_with_rollback(api, store):
    project = api.seed_project("Launch")
    task = api.seed_task(project.id, "A")
    await store.load_all()
    await store.load_project_tasks(project.id)

    first = await store.add_task_comment(project.id, task.id, "first")
    second = await store.add_task_comment(project.id, task.id, "second")
    assert [c.text for c in store.get_task(project.id, task.id).comments] == ["first", "second"]

    api.failing.add("delete_comment")
    await store.delete_task_comment(project.id, task.id, first.id)
    assert [c.id for c in store.get_task(project.id, task.id).comments] == [first.id, second.id]

    api.failing.clear()
    await store.delete_task_comment(project.id, task.id, first.id)
    assert [c.id for c in store.get_task(project.id, task.id).comments] == [second.id]


async def test_add_project_and_team_member(api, store):
    api.seed_project("Middle")
    await store.load_all()

    await store.add_project("Alpha", tags=["x"])
    await store.add_project("Zulu")
    assert [p.name for p in store.state.projects] == ["Alpha", "Middle", "Zulu"]
    assert store.get_project(store.state.projects[0].id).tags == ("x",)

    await store.add_team_member("Carol")
    assert [m.name for m in store.state.team] == ["Carol"]


async def test_loading_counter_and_subscribers(api, store):
    api.seed_project("Launch")
    seen = []
    unsubscribe = store.subscribe(lambda state: seen.append(store.loading))

    await store.load_all()
    assert True in seen
    assert store.loading is False

    unsubscribe()
    count = len(seen)
    await store.load_all()
    assert len(seen) == count


async def test_update_task_details_merges_canonical(api, store):
    project = api.seed_project("Launch")
    task = api.seed_task(project.id, "A")
    await store.load_all()
    await store.load_project_tasks(project.id)

    updated = await store.update_task_details(project.id, task.id, status="draft", description="write outline")
    assert updated.status.value == "draft"
    assert store.get_task(project.id, task.id).description == "write outline"

    api.failing.add("update_task")
    assert await store.update_task_details(project.id, task.id, status="version") is None
    assert store.get_task(project.id, task.id).status.value == "draft"


async def test_deleting_unsent_placeholder_cancels_create(api, store):
    project = api.seed_project("Launch")
    api.seed_task(project.id, "Done", completed=True)
    await store.load_all()
    await store.load_project_tasks(project.id)

    temp_id = await store.add_task(project.id, "Oops")
    assert store.get_project(project.id).progress == 50

    await store.delete_task(project.id, temp_id)
    await store.drain()

    cached = store.get_project(project.id)
    assert api.calls["create_task"] == 0
    assert api.calls["delete_task"] == 0
    assert [t.name for t in cached.tasks] == ["Done"]
    assert cached.progress == 100


async def test_deleting_in_flight_placeholder_removes_server_task(api, store):
    project = api.seed_project("Launch")
    await store.load_all()
    await store.load_project_tasks(project.id)
    api.create_gate = asyncio.Event()
    api.create_started = asyncio.Event()

    temp_id = await store.add_task(project.id, "Oops")
    await api.create_started.wait()

    await store.delete_task(project.id, temp_id)
    assert store.get_project(project.id).tasks == ()

    api.create_gate.set()
    await store.drain()

    assert api.calls["create_task"] == 1
    assert api.calls["delete_task"] == 1
    assert api.tasks[project.id] == []
    assert store.get_project(project.id).tasks == ()
    assert store.loading is False


async def test_invalid_progress_value_is_ignored(api, store):
    project = api.seed_project("Launch", auto_progress=False, progress=30)
    await store.load_all()

    await store.set_project_progress(project.id, float("nan"))
    await store.set_project_progress(project.id, float("inf"))
    await store.drain()

    assert store.get_project(project.id).progress == 30
    assert api.calls["update_project"] == 0
