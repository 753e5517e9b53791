from datetime import timedelta
from typing import AsyncIterator, Optional

import pytest
from app import deps
from app.config import get_settings
from app.deps import get_current_actor, get_session, require_permission
from app.domain.access import ActorContext, Permission
from app.routers import bookings
from app.utils.auth import create_access_token
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.exc import ProgrammingError

STAFF = ActorContext.from_role(
    user_id=123,
    role="staff",
    accessible_pages=["bookings"],
    permissions={"bookings": "read"},
)


class DummySession:
    async def rollback(self) -> None:
        return None


def _user_repo(actor: Optional[ActorContext] | Exception) -> type:
    class FakeUserRepo:
        def __init__(self, session: object) -> None:
            self.session = session

        async def get_actor(self, user_id: int) -> Optional[ActorContext]:
            if isinstance(actor, Exception):
                raise actor
            return actor

    return FakeUserRepo


def _make_app() -> TestClient:
    app = FastAPI()

    async def override_get_session() -> AsyncIterator[DummySession]:
        yield DummySession()

    app.dependency_overrides[get_session] = override_get_session

    @app.get("/protected")
    async def protected(actor: ActorContext = Depends(get_current_actor)) -> dict[str, int]:
        return {"user_id": actor.user_id}

    @app.get("/venues-write")
    async def venues_write(actor: ActorContext = Depends(require_permission("venues", Permission.WRITE))) -> dict[str, bool]:
        return {"ok": True}

    app.include_router(bookings.router)
    return TestClient(app)


def _token(*, expired: bool = False) -> str:
    delta = timedelta(seconds=-1) if expired else timedelta(minutes=30)
    return create_access_token(user_id=123, secret="testsecret", expires_delta=delta)


@pytest.fixture(autouse=True)
def _auth_secret(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("AUTH_SECRET", "testsecret")
    get_settings.cache_clear()
    monkeypatch.setattr(deps, "SqlAlchemyUserRepository", _user_repo(STAFF))


def test_protected_accepts_valid_token() -> None:
    res = _make_app().get("/protected", headers={"Authorization": f"Bearer {_token()}"})
    assert res.status_code == 200
    assert res.json()["user_id"] == 123


def test_protected_rejects_missing_header() -> None:
    res = _make_app().get("/protected")
    assert res.status_code == 401
    assert res.headers.get("www-authenticate", "").lower().startswith("bearer")


def test_protected_rejects_invalid_token() -> None:
    res = _make_app().get("/protected", headers={"Authorization": "Bearer invalid"})
    assert res.status_code == 401


def test_protected_rejects_expired_token() -> None:
    res = _make_app().get("/protected", headers={"Authorization": f"Bearer {_token(expired=True)}"})
    assert res.status_code == 401


def test_protected_rejects_when_user_not_found(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(deps, "SqlAlchemyUserRepository", _user_repo(None))
    res = _make_app().get("/protected", headers={"Authorization": f"Bearer {_token()}"})
    assert res.status_code == 401


def test_user_lookup_failure_is_500(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(
        deps,
        "SqlAlchemyUserRepository",
        _user_repo(ProgrammingError("missing", None, Exception("cause"))),
    )
    res = _make_app().get("/protected", headers={"Authorization": f"Bearer {_token()}"})
    assert res.status_code == 500


def test_missing_permission_is_403() -> None:
    res = _make_app().get("/venues-write", headers={"Authorization": f"Bearer {_token()}"})
    assert res.status_code == 403


def test_read_only_role_cannot_create_bookings() -> None:
    body = {
        "venue_id": 1,
        "event_name": "Gala",
        "event_type": "party",
        "start_date": "2030-06-01T00:00:00",
        "is_full_day": True,
    }
    res = _make_app().post("/bookings", json=body, headers={"Authorization": f"Bearer {_token()}"})
    assert res.status_code == 403
