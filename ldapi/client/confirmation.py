"""
마지막 Manager 제거를 명시적 확인 뒤에만 실행하는 클라이언트 측 상태 기계.

update(model, msg)는 순수 함수이며 (새 모델, 실행할 커맨드 목록)을 반환합니다.
네트워크 호출은 ConfirmationLoop가 커맨드를 실행하고, 그 결과를 다시 메시지로 전달합니다.
"""
import asyncio
import enum
import logging
from dataclasses import dataclass, field, replace
from typing import List, Optional, Set, Tuple, Union

import httpx

from ldapi.client.api_client import ApiError, MembershipApiClient
from ldapi.services import roles
from ldapi.services.invariants import RemoveMembership, would_violate_last_manager
from ldapi.services.roles import ProjectRole

logger = logging.getLogger(__name__)


class ConfirmationState(enum.Enum):
    IDLE = "idle"
    AWAITING_CONFIRMATION = "awaiting_confirmation"


@dataclass(frozen=True)
class PendingRemoval:
    project: str
    login: str
    role: Optional[ProjectRole]
    ticket: int


@dataclass(frozen=True)
class ConfirmationModel:
    state: ConfirmationState = ConfirmationState.IDLE
    pending: Optional[PendingRemoval] = None
    project: Optional[str] = None
    members: Tuple[Tuple[str, Optional[ProjectRole]], ...] = ()
    notifications: Tuple[str, ...] = ()
    next_ticket: int = 1
    in_flight: frozenset = field(default_factory=frozenset)


# --- Messages ---
@dataclass(frozen=True)
class MembersLoaded:
    project: str
    members: Tuple[Tuple[str, str], ...]

@dataclass(frozen=True)
class RequestRemoval:
    project: str
    login: str

@dataclass(frozen=True)
class ConfirmRemoval:
    pass

@dataclass(frozen=True)
class DeclineRemoval:
    pass

@dataclass(frozen=True)
class RemovalSucceeded:
    ticket: int
    project: str
    login: str

@dataclass(frozen=True)
class RemovalNeedsConfirmation:
    ticket: int
    project: str
    login: str
    role: Optional[str] = None

@dataclass(frozen=True)
class RemovalFailed:
    ticket: int
    message: str

Msg = Union[MembersLoaded, RequestRemoval, ConfirmRemoval, DeclineRemoval,
            RemovalSucceeded, RemovalNeedsConfirmation, RemovalFailed]


# --- Commands ---
@dataclass(frozen=True)
class RemoveMemberCommand:
    project: str
    login: str
    confirmed: bool
    ticket: int

Cmd = RemoveMemberCommand


def _hold(model: ConfirmationModel, pending: PendingRemoval) -> ConfirmationModel:
    # 모달은 하나뿐이므로 기존에 보류 중인 요청은 새 요청으로 교체됩니다.
    if model.pending is not None:
        logger.debug("Replacing pending removal of '%s' with '%s'", model.pending.login, pending.login)
    return replace(model, state=ConfirmationState.AWAITING_CONFIRMATION, pending=pending)


def _notify(model: ConfirmationModel, message: str) -> ConfirmationModel:
    return replace(model, notifications=model.notifications + (message,))


def _role_or_none(name: Optional[str]) -> Optional[ProjectRole]:
    # 서버가 알 수 없는 역할 이름을 보내도 상태 기계는 멈추지 않습니다.
    result = roles.parse_role_specifier(name) if name else None
    return result.role if isinstance(result, roles.Resolved) else None


def update(model: ConfirmationModel, msg: Msg) -> Tuple[ConfirmationModel, List[Cmd]]:
    if isinstance(msg, MembersLoaded):
        members = tuple((login, _role_or_none(role)) for login, role in msg.members)
        return replace(model, project=msg.project, members=members), []

    if isinstance(msg, RequestRemoval):
        ticket = model.next_ticket
        model = replace(model, next_ticket=ticket + 1)
        current = dict(model.members).get(msg.login) if msg.project == model.project else None
        known = [(login, role) for login, role in model.members if role is not None]
        if current is not None and would_violate_last_manager(known, RemoveMembership(msg.login, current)):
            return _hold(model, PendingRemoval(msg.project, msg.login, current, ticket)), []
        cmd = RemoveMemberCommand(msg.project, msg.login, confirmed=False, ticket=ticket)
        return replace(model, in_flight=model.in_flight | {ticket}), [cmd]

    if isinstance(msg, ConfirmRemoval):
        if model.state is not ConfirmationState.AWAITING_CONFIRMATION or model.pending is None:
            return model, []
        pending = model.pending
        cmd = RemoveMemberCommand(pending.project, pending.login, confirmed=True, ticket=pending.ticket)
        model = replace(model, state=ConfirmationState.IDLE, pending=None,
                        in_flight=model.in_flight | {pending.ticket})
        return model, [cmd]

    if isinstance(msg, DeclineRemoval):
        return replace(model, state=ConfirmationState.IDLE, pending=None), []

    # 이하 결과 메시지: 이미 대체되었거나 모르는 티켓의 결과는 무시합니다.
    if msg.ticket not in model.in_flight:
        logger.debug("Ignoring result for superseded ticket %d", msg.ticket)
        return model, []
    model = replace(model, in_flight=model.in_flight - {msg.ticket})

    if isinstance(msg, RemovalSucceeded):
        if msg.project == model.project:
            model = replace(model, members=tuple(m for m in model.members if m[0] != msg.login))
        return _notify(model, f"Removed {msg.login} from {msg.project}"), []

    if isinstance(msg, RemovalNeedsConfirmation):
        if model.pending is not None and model.pending.ticket > msg.ticket:
            return model, []
        return _hold(model, PendingRemoval(msg.project, msg.login, _role_or_none(msg.role), msg.ticket)), []

    if isinstance(msg, RemovalFailed):
        # 확인된 요청은 디스패치 시점에 이미 IDLE로 돌아와 있습니다.
        return _notify(model, msg.message), []

    raise TypeError(f"Unknown message: {msg!r}")


async def execute(cmd: Cmd, api: MembershipApiClient) -> Msg:
    """
    커맨드를 실행하고 그 결과를 메시지로 변환합니다.
    어떤 실패든 RemovalFailed가 되므로 티켓이 in_flight에 남지 않습니다.
    """
    try:
        outcome = await api.remove_member(cmd.project, cmd.login, confirmed=cmd.confirmed)
    except ApiError as e:
        return RemovalFailed(cmd.ticket, e.message)
    except httpx.HTTPError as e:
        return RemovalFailed(cmd.ticket, f"Network error: {e}")
    except Exception as e:
        logger.exception("Removal of '%s' from '%s' failed unexpectedly", cmd.login, cmd.project)
        return RemovalFailed(cmd.ticket, f"Unexpected error: {e}")

    if outcome.removed:
        return RemovalSucceeded(cmd.ticket, cmd.project, cmd.login)
    return RemovalNeedsConfirmation(cmd.ticket, cmd.project, cmd.login, outcome.confirmation.get("role"))


class ConfirmationLoop:
    """
    메시지를 하나씩 처리하는 단일 스레드 디스패처입니다.
    커맨드는 별도 태스크로 실행되고, 완료되면 결과 메시지가 큐에 들어갑니다.
    """

    def __init__(self, api: MembershipApiClient, model: Optional[ConfirmationModel] = None):
        self.api = api
        self.model = model or ConfirmationModel()
        self._queue: asyncio.Queue = asyncio.Queue()
        self._tasks: Set[asyncio.Task] = set()

    def dispatch(self, msg: Msg) -> None:
        self._queue.put_nowait(msg)

    async def load_members(self, project: str) -> None:
        members = await self.api.list_members(project)
        self.dispatch(MembersLoaded(project, tuple(members)))

    async def run_until_idle(self) -> ConfirmationModel:
        """큐가 비고 실행 중인 커맨드가 없을 때까지 메시지를 처리합니다."""
        while True:
            while not self._queue.empty():
                self._process(self._queue.get_nowait())
            if not self._tasks:
                return self.model
            done, self._tasks = await asyncio.wait(self._tasks, return_when=asyncio.FIRST_COMPLETED)
            for task in done:
                if not task.cancelled() and task.exception() is not None:
                    logger.error("Command task failed", exc_info=task.exception())

    def _process(self, msg: Msg) -> None:
        self.model, commands = update(self.model, msg)
        for cmd in commands:
            task = asyncio.create_task(self._run(cmd))
            self._tasks.add(task)

    async def _run(self, cmd: Cmd) -> None:
        self.dispatch(await execute(cmd, self.api))
