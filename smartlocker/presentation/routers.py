from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import List

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request, Response

from smartlocker.core.entities.session import PaymentStatus, SessionStatus
from smartlocker.core.errors import ErrorKind, SmartLockerError
from smartlocker.schemas.models import (
    LockerOut,
    LockerStatisticsOut,
    RemainingTimeOut,
    SessionItemsIn,
    SessionOut,
    StartSessionIn,
    SweepOut,
    UpdateLockerIn,
    UpdateSessionIn,
    UserStatsOut,
)
from smartlocker.services.lifecycle_service import LifecycleService

router = APIRouter()

_STATUS_BY_KIND = {
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
    ErrorKind.INVALID_ARGUMENT: 422,
    ErrorKind.PRECONDITION_FAILED: 412,
    ErrorKind.STORAGE_UNAVAILABLE: 503,
}


def get_service(request: Request) -> LifecycleService:
    return request.app.state.lifecycle


def get_current_user_id(x_user_id: int | None = Header(default=None)) -> int:
    """
    The caller identity comes from the authentication layer in front of this
    service; it is trusted as given.
    """
    if x_user_id is None:
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    return x_user_id


@contextmanager
def _domain_errors() -> Iterator[None]:
    try:
        yield
    except SmartLockerError as e:
        raise HTTPException(status_code=_STATUS_BY_KIND[e.kind], detail=str(e)) from e


# -----------------------------
# Lockers
# -----------------------------
@router.get("/lockers", response_model=List[LockerOut])
def get_lockers(service: LifecycleService = Depends(get_service)) -> List[LockerOut]:
    with _domain_errors():
        return [LockerOut.from_entity(locker) for locker in service.list_lockers.execute()]


@router.get("/lockers/available", response_model=List[LockerOut])
def get_lockers_available(service: LifecycleService = Depends(get_service)) -> List[LockerOut]:
    with _domain_errors():
        return [LockerOut.from_entity(locker) for locker in service.list_lockers.execute(available_only=True)]


@router.get("/lockers/statistics", response_model=LockerStatisticsOut)
def get_lockers_statistics(service: LifecycleService = Depends(get_service)) -> LockerStatisticsOut:
    with _domain_errors():
        return LockerStatisticsOut(by_status=service.locker_statistics.execute())


@router.get("/lockers/{locker_id}", response_model=LockerOut)
def get_lockers_locker_id(locker_id: int, service: LifecycleService = Depends(get_service)) -> LockerOut:
    with _domain_errors():
        return LockerOut.from_entity(service.get_locker.execute(locker_id=locker_id))


@router.put("/lockers/{locker_id}", response_model=LockerOut)
def put_lockers_locker_id(
    locker_id: int,
    body: UpdateLockerIn,
    service: LifecycleService = Depends(get_service),
) -> LockerOut:
    """
    Administrative status change (available / maintenance / out_of_order)
    """
    with _domain_errors():
        return LockerOut.from_entity(service.set_locker_status.execute(locker_id=locker_id, status=body.status))


@router.post("/lockers/{locker_id}/open", response_model=LockerOut)
def post_lockers_locker_id_open(
    locker_id: int,
    user_id: int = Depends(get_current_user_id),
    service: LifecycleService = Depends(get_service),
) -> LockerOut:
    """
    Remote unlock of the locker held by the caller's active session
    """
    with _domain_errors():
        return LockerOut.from_entity(service.open_locker.execute(locker_id=locker_id, user_id=user_id))


# -----------------------------
# Sessions
# -----------------------------
@router.post("/sessions", response_model=SessionOut, status_code=201)
def post_sessions(
    body: StartSessionIn,
    user_id: int = Depends(get_current_user_id),
    service: LifecycleService = Depends(get_service),
) -> SessionOut:
    """
    Start a rental session

    Returns:
      - 201 with the created session
      - 404 unknown locker
      - 409 locker unavailable / user already has an active session
      - 422 duration outside (0, max] hours
    """
    with _domain_errors():
        session = service.start_session.execute(
            user_id=user_id,
            locker_id=body.locker_id,
            planned_duration_hours=body.planned_duration_hours,
            items=body.items,
        )
    return SessionOut.from_entity(session)


@router.get("/sessions/{session_id}", response_model=SessionOut)
def get_sessions_session_id(
    session_id: int,
    user_id: int = Depends(get_current_user_id),
    service: LifecycleService = Depends(get_service),
) -> SessionOut:
    with _domain_errors():
        return SessionOut.from_entity(service.get_session.execute(session_id=session_id, user_id=user_id))


@router.put("/sessions/{session_id}", response_model=SessionOut)
def put_sessions_session_id(
    session_id: int,
    body: UpdateSessionIn,
    user_id: int = Depends(get_current_user_id),
    service: LifecycleService = Depends(get_service),
) -> SessionOut:
    """
    End a session (status=finished) or record the payment of an ended one

    Returns:
      - 200 with the updated session
      - 404 unknown session
      - 412 session not in a state that allows the change
      - 422 unsupported status transition
    """
    if body.status is not None and body.status is not SessionStatus.FINISHED:
        raise HTTPException(status_code=422, detail=f"Unsupported status transition to {body.status.value!r}")
    if body.status is None and body.payment_status is None:
        raise HTTPException(status_code=422, detail="Nothing to update")

    with _domain_errors():
        if body.status is SessionStatus.FINISHED:
            session = service.end_session.execute(
                session_id=session_id,
                payment_status=body.payment_status or PaymentStatus.PAID,
                user_id=user_id,
            )
        else:
            session = service.record_payment.execute(
                session_id=session_id,
                payment_status=body.payment_status,
                user_id=user_id,
            )
    return SessionOut.from_entity(session)


@router.delete("/sessions/{session_id}", status_code=204, response_model=None)
def delete_sessions_session_id(session_id: int, service: LifecycleService = Depends(get_service)) -> Response:
    with _domain_errors():
        service.delete_session.execute(session_id=session_id)
    return Response(status_code=204)


@router.post("/sessions/{session_id}/lock", response_model=SessionOut)
def post_sessions_session_id_lock(
    session_id: int,
    user_id: int = Depends(get_current_user_id),
    service: LifecycleService = Depends(get_service),
) -> SessionOut:
    with _domain_errors():
        return SessionOut.from_entity(service.lock_session.execute(session_id=session_id, user_id=user_id))


@router.put("/sessions/{session_id}/items", response_model=SessionOut)
def put_sessions_session_id_items(
    session_id: int,
    body: SessionItemsIn,
    user_id: int = Depends(get_current_user_id),
    service: LifecycleService = Depends(get_service),
) -> SessionOut:
    with _domain_errors():
        session = service.update_items.execute(session_id=session_id, user_id=user_id, items=body.items)
    return SessionOut.from_entity(session)


@router.get("/sessions/{session_id}/remaining", response_model=RemainingTimeOut)
def get_sessions_session_id_remaining(
    session_id: int,
    user_id: int = Depends(get_current_user_id),
    service: LifecycleService = Depends(get_service),
) -> RemainingTimeOut:
    with _domain_errors():
        dto = service.remaining_time.execute(session_id=session_id, user_id=user_id)
    return RemainingTimeOut(
        session_id=dto.session_id,
        status=dto.status,
        planned_end_at=dto.planned_end_at,
        remaining_seconds=dto.remaining_seconds,
    )


# -----------------------------
# Current user
# -----------------------------
@router.get("/me/sessions", response_model=List[SessionOut])
def get_me_sessions(
    status: SessionStatus | None = Query(default=None),
    user_id: int = Depends(get_current_user_id),
    service: LifecycleService = Depends(get_service),
) -> List[SessionOut]:
    with _domain_errors():
        sessions = service.list_user_sessions.execute(user_id=user_id, status=status)
    return [SessionOut.from_entity(session) for session in sessions]


@router.get("/me/stats", response_model=UserStatsOut)
def get_me_stats(
    user_id: int = Depends(get_current_user_id),
    service: LifecycleService = Depends(get_service),
) -> UserStatsOut:
    with _domain_errors():
        dto = service.user_stats.execute(user_id=user_id)
    return UserStatsOut(
        user_id=dto.user_id,
        total_sessions=dto.total_sessions,
        total_spent=dto.total_spent,
        total_hours=dto.total_hours,
        has_active_session=dto.has_active_session,
    )


# -----------------------------
# Administration
# -----------------------------
@router.post("/admin/sweeps", response_model=SweepOut)
def post_admin_sweeps(service: LifecycleService = Depends(get_service)) -> SweepOut:
    """
    Run one expiry sweeper tick now
    """
    with _domain_errors():
        result = service.sweeper.tick()
    return SweepOut(
        expired=list(result.expired.expired_session_ids),
        reclaimed=list(result.reclaimed.expired_session_ids),
    )
