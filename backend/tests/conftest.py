import copy
from dataclasses import replace

import pytest

from app.modules.tasks.store import (
    ContentStoreError,
    ProjectRecord,
    TaskInstance,
    TaskNotFoundError,
)


class InMemoryContentStore:
    """Content store kept in dicts; records every call in ``calls``."""

    def __init__(self):
        self.tasks: dict[str, TaskInstance] = {}
        self.projects: dict[str, ProjectRecord] = {}
        self.settings: dict[str, str] = {}
        self.calls: list[tuple] = []
        self.failing_ids: set[str] = set()
        self._next_id = 100

    def AddTask(self, **fields) -> TaskInstance:
        task_id = fields.pop("Id", None) or self._NewId()
        task = TaskInstance(Id=task_id, **fields)
        self.tasks[task_id] = task
        return task

    def AddProject(self, project_id: str, name: str, importance: str = "normal", world: str | None = None):
        project = ProjectRecord(Id=project_id, Name=name, Importance=importance, World=world)
        self.projects[project_id] = project
        return project

    def _NewId(self) -> str:
        self._next_id += 1
        return str(self._next_id)

    def _Get(self, task_id: str) -> TaskInstance:
        if task_id not in self.tasks:
            raise TaskNotFoundError("Task not found")
        return self.tasks[task_id]

    def FetchInstance(self, task_id):
        self.calls.append(("fetch", task_id))
        return copy.deepcopy(self._Get(task_id))

    def UpdateInstance(self, task_id, fields):
        self.calls.append(("update", task_id, dict(fields)))
        if task_id in self.failing_ids:
            raise ContentStoreError(f"update failed for {task_id}")
        updated = replace(self._Get(task_id), **fields)
        self.tasks[task_id] = updated
        return copy.deepcopy(updated)

    def CreateInstance(self, fields):
        task_id = self._NewId()
        self.calls.append(("create", task_id))
        self.tasks[task_id] = TaskInstance(Id=task_id, **fields)
        return task_id

    def DeleteInstance(self, task_id):
        self.calls.append(("delete", task_id))
        self._Get(task_id)
        del self.tasks[task_id]

    def ListEligibleForReset(self):
        return [copy.deepcopy(task) for task in self.tasks.values() if task.IsSoon]

    def ListProjectsEligibleForReset(self):
        return [replace(project) for project in self.projects.values() if project.Importance == "top of mind"]

    def UpdateProject(self, project_id, fields):
        self.calls.append(("update_project", project_id, dict(fields)))
        if project_id in self.failing_ids:
            raise ContentStoreError(f"update failed for {project_id}")
        self.projects[project_id] = replace(self.projects[project_id], **fields)

    def ListCompletedSince(self, day):
        return [copy.deepcopy(task) for task in self.tasks.values() if task.IsCompleted]

    def ListLongTasks(self):
        return [copy.deepcopy(task) for task in self.tasks.values() if task.IsLong]

    def ReadSetting(self, key):
        return self.settings.get(key)

    def WriteSetting(self, key, value):
        self.calls.append(("write_setting", key, value))
        self.settings[key] = value


@pytest.fixture
def store() -> InMemoryContentStore:
    return InMemoryContentStore()
