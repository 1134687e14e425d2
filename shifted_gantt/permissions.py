"""Role based permission checks."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, List, Optional

from .models import Task, TaskStatus

logger = logging.getLogger(__name__)


class UserRole(str, Enum):
    ADMIN = "Admin"
    EDITOR = "Editor"
    SCRIPT_WRITER = "Script Writer"
    VIEWER = "Viewer"
    FINANCE = "Finance"
    PROJECT_MANAGER = "Project Manager"


class Action(str, Enum):
    VIEW_TIMELINE = "view_timeline"
    CREATE_PROJECT = "create_project"
    EDIT_PROJECT = "edit_project"
    DELETE_PROJECT = "delete_project"
    CREATE_TASK = "create_task"
    EDIT_TASK = "edit_task"
    DELETE_TASK = "delete_task"
    MANAGE_TEAM = "manage_team"
    MANAGE_FINANCE = "manage_finance"
    ADMINISTER = "administer"
    EXPORT = "export"


@dataclass(frozen=True)
class User:
    id: str
    name: str
    role: UserRole
    email: str = ""


_ALL_ROLES = frozenset(UserRole)
_MANAGERS = frozenset({UserRole.ADMIN, UserRole.EDITOR, UserRole.PROJECT_MANAGER})

_ALLOWED_ROLES: Dict[Action, FrozenSet[UserRole]] = {
    Action.VIEW_TIMELINE: _ALL_ROLES,
    Action.CREATE_PROJECT: _MANAGERS,
    Action.EDIT_PROJECT: _MANAGERS,
    Action.DELETE_PROJECT: _MANAGERS,
    Action.CREATE_TASK: _MANAGERS | {UserRole.SCRIPT_WRITER},
    Action.EDIT_TASK: _MANAGERS | {UserRole.SCRIPT_WRITER},
    Action.DELETE_TASK: _MANAGERS,
    Action.MANAGE_TEAM: frozenset({UserRole.ADMIN, UserRole.PROJECT_MANAGER}),
    Action.MANAGE_FINANCE: frozenset({UserRole.ADMIN, UserRole.FINANCE}),
    Action.ADMINISTER: frozenset({UserRole.ADMIN}),
    Action.EXPORT: _ALL_ROLES - {UserRole.VIEWER},
}

_LOCKED_STATUSES = (TaskStatus.DONE, TaskStatus.PUBLISHED)
_SCRIPT_WRITER_STATUSES = [TaskStatus.TODO, TaskStatus.IN_PROGRESS, TaskStatus.IN_REVIEW, TaskStatus.BLOCKED]
_FINANCE_STATUSES = [TaskStatus.TODO, TaskStatus.IN_PROGRESS, TaskStatus.BLOCKED, TaskStatus.DONE]


def _is_assignee(user: User, task: Optional[Task]) -> bool:
    return task is not None and task.assignee is not None and task.assignee == user.name


def authorize(user: Optional[User], action: Action, task: Optional[Task] = None) -> bool:
    """Return True when ``user`` may perform ``action``.

    Finance users may edit a task only when it is assigned to them, so
    ``task`` matters for :attr:`Action.EDIT_TASK`.
    """
    if user is None:
        return False
    if user.role in _ALLOWED_ROLES[action]:
        return True
    if action is Action.EDIT_TASK and user.role is UserRole.FINANCE and _is_assignee(user, task):
        return True
    logger.debug("Denied %s for %s (%s)", action.value, user.name, user.role.value)
    return False


def allowed_statuses(user: Optional[User], task: Optional[Task] = None) -> List[TaskStatus]:
    """Statuses ``user`` may pick for ``task`` (or for a new task when None)."""
    if user is None:
        return []
    if user.role in _MANAGERS:
        return list(TaskStatus)
    locked = task is not None and task.status in _LOCKED_STATUSES
    if user.role is UserRole.SCRIPT_WRITER:
        return [task.status] if locked else list(_SCRIPT_WRITER_STATUSES)
    if user.role is UserRole.FINANCE and _is_assignee(user, task):
        return [task.status] if locked else list(_FINANCE_STATUSES)
    return [task.status] if task is not None else []
