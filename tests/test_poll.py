from __future__ import annotations

import asyncio
import time
from concurrent.futures import ThreadPoolExecutor

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import QueuePool

from conftest import DEFAULT_PASSWORD, auth, wait_until
from socialhub.api.deps import get_session_factory
from socialhub.api.routes import poll as poll_routes
from socialhub.core.auth import create_auth_header
from socialhub.core.db import get_db
from socialhub.core.init_db import init_db
from socialhub.main import app
from socialhub.models.message import Message
from socialhub.services import messages as message_service
from socialhub.services.broker import NotificationBroker
from socialhub.services.users import register_user


def test_poll_requires_token(client: TestClient) -> None:
    response = client.get("/poll/1")
    assert response.status_code == 401


def test_poll_for_someone_else_is_refused(client: TestClient, make_user, broker) -> None:
    alice = make_user()
    bob = make_user()

    response = client.get(f"/poll/{bob.id}", headers=auth(alice))

    assert response.status_code == 401
    assert response.json()["message"] == "Not authorized"
    assert broker.waiting_count() == 0


def test_poll_returns_unread_immediately(client: TestClient, make_user, db_session, broker) -> None:
    alice = make_user()
    bob = make_user()
    first = message_service.send_message(db_session, broker, alice.id, bob.id, "one")
    second = message_service.send_message(db_session, broker, alice.id, bob.id, "two")
    message_service.send_message(db_session, broker, bob.id, alice.id, "not for bob")

    response = client.get(f"/poll/{bob.id}", headers=auth(bob))

    assert response.status_code == 200
    assert [m["id"] for m in response.json()] == [first.id, second.id]
    assert all(m["isRead"] is False for m in response.json())
    assert broker.waiting_count() == 0


def test_poll_skips_read_messages_and_times_out_empty(client: TestClient, make_user, db_session, broker) -> None:
    alice = make_user()
    bob = make_user()
    msg = message_service.send_message(db_session, broker, alice.id, bob.id, "seen")
    message_service.mark_read_range(db_session, bob.id, msg.id, msg.id)

    response = client.get(f"/poll/{bob.id}", headers=auth(bob))

    assert response.status_code == 200
    assert response.json() == []
    assert broker.waiting_count() == 0


def test_parked_poll_receives_sent_message(client: TestClient, make_user) -> None:
    alice = make_user()
    bob = make_user()
    broker = NotificationBroker(timeout=5)
    app.state.broker = broker

    with ThreadPoolExecutor(max_workers=1) as pool:
        parked = pool.submit(TestClient(app).get, f"/poll/{bob.id}", headers=auth(bob))
        assert wait_until(lambda: broker.waiting_count(bob.id) == 1)
        # let the post-subscribe recheck finish before sending
        time.sleep(0.2)

        sent = client.post("/message/send", json={"toUserId": bob.id, "text": "hi"}, headers=auth(alice))
        response = parked.result(timeout=5)

    assert sent.status_code == 200
    assert response.status_code == 200
    assert response.json() == [sent.json()]
    assert broker.waiting_count() == 0


def test_two_pollers_both_receive_message(client: TestClient, make_user) -> None:
    alice = make_user()
    bob = make_user()
    broker = NotificationBroker(timeout=5)
    app.state.broker = broker

    with ThreadPoolExecutor(max_workers=2) as pool:
        first = pool.submit(TestClient(app).get, f"/poll/{bob.id}", headers=auth(bob))
        assert wait_until(lambda: broker.waiting_count(bob.id) == 1)
        time.sleep(0.2)
        second = pool.submit(TestClient(app).get, f"/poll/{bob.id}", headers=auth(bob))
        assert wait_until(lambda: broker.waiting_count(bob.id) == 2)
        time.sleep(0.2)

        sent = client.post("/message/send", json={"toUserId": bob.id, "text": "both"}, headers=auth(alice))
        responses = [first.result(timeout=5), second.result(timeout=5)]

    assert sent.status_code == 200
    for response in responses:
        assert response.status_code == 200
        assert response.json() == [sent.json()]


def test_parked_polls_leave_connection_pool_free(tmp_path) -> None:
    pooled = create_engine(
        f"sqlite:///{tmp_path / 'pool.db'}",
        connect_args={"check_same_thread": False},
        poolclass=QueuePool,
        pool_size=1,
        max_overflow=0,
        pool_timeout=2,
    )
    Factory = sessionmaker(autocommit=False, autoflush=False, bind=pooled)
    init_db(bind=pooled)

    with Factory() as db:
        alice_id = register_user(db, "alice@example.com", "Alice", DEFAULT_PASSWORD).id
        bob_id = register_user(db, "bob@example.com", "Bob", DEFAULT_PASSWORD).id

    def _get_db():
        db = Factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_session_factory] = lambda: Factory
    broker = NotificationBroker(timeout=5)
    app.state.broker = broker
    bob_headers = {"Authorization": create_auth_header(bob_id)}

    try:
        with ThreadPoolExecutor(max_workers=3) as pool:
            # more parked polls than the pool has connections
            parked = []
            for n in range(3):
                parked.append(pool.submit(TestClient(app).get, f"/poll/{bob_id}", headers=bob_headers))
                assert wait_until(lambda: broker.waiting_count(bob_id) == n + 1)
            time.sleep(0.2)
            assert wait_until(lambda: pooled.pool.checkedout() == 0)

            me = TestClient(app).get("/user/me", headers=bob_headers)
            assert me.status_code == 200
            assert me.json()["id"] == bob_id

            sent = TestClient(app).post(
                "/message/send",
                json={"toUserId": bob_id, "text": "still answering"},
                headers={"Authorization": create_auth_header(alice_id)},
            )
            responses = [future.result(timeout=5) for future in parked]
    finally:
        app.dependency_overrides.clear()
        pooled.dispose()

    assert sent.status_code == 200
    for response in responses:
        assert response.status_code == 200
        assert response.json() == [sent.json()]


def test_message_committed_after_subscribe_is_returned_at_once(client: TestClient, make_user, monkeypatch) -> None:
    alice_id = make_user().id
    bob = make_user()
    broker = NotificationBroker(timeout=5)
    app.state.broker = broker

    real_get_unread = poll_routes.get_unread
    calls = []

    def get_unread_with_late_message(db, user_id, limit=100):
        calls.append(user_id)
        if len(calls) == 2:
            # lands after the first check found nothing and the poll has parked
            db.add(Message(from_user_id=alice_id, to_user_id=user_id, text="in the gap", is_read=False))
            db.commit()
        return real_get_unread(db, user_id, limit)

    monkeypatch.setattr(poll_routes, "get_unread", get_unread_with_late_message)

    started = time.monotonic()
    response = client.get(f"/poll/{bob.id}", headers=auth(bob))
    elapsed = time.monotonic() - started

    assert response.status_code == 200
    assert [m["text"] for m in response.json()] == ["in the gap"]
    assert elapsed < 2
    assert len(calls) == 2
    assert broker.waiting_count() == 0


def test_push_claiming_subscription_first_wins(client: TestClient, make_user, monkeypatch) -> None:
    alice_id = make_user().id
    bob = make_user()

    class RecordingBroker(NotificationBroker):
        def __init__(self, **kwargs):
            super().__init__(**kwargs)
            self.published = []

        def publish(self, user_id, payload):
            delivered = super().publish(user_id, payload)
            self.published.append(delivered)
            return delivered

    broker = RecordingBroker(timeout=5)
    app.state.broker = broker

    real_get_unread = poll_routes.get_unread
    calls = []

    def get_unread_after_push(db, user_id, limit=100):
        calls.append(user_id)
        if len(calls) == 2:
            message_service.send_message(db, broker, alice_id, user_id, "pushed first")
        return real_get_unread(db, user_id, limit)

    monkeypatch.setattr(poll_routes, "get_unread", get_unread_after_push)

    started = time.monotonic()
    response = client.get(f"/poll/{bob.id}", headers=auth(bob))
    elapsed = time.monotonic() - started

    assert broker.published == [1]
    assert response.status_code == 200
    assert [m["text"] for m in response.json()] == ["pushed first"]
    assert elapsed < 2
    assert broker.waiting_count() == 0


def test_client_disconnect_releases_parked_poll(client: TestClient, make_user) -> None:
    bob_id = make_user().id
    broker = NotificationBroker(timeout=5)
    app.state.broker = broker

    scope = {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": "GET",
        "scheme": "http",
        "path": f"/poll/{bob_id}",
        "raw_path": f"/poll/{bob_id}".encode(),
        "root_path": "",
        "query_string": b"",
        "headers": [
            (b"host", b"testserver"),
            (b"authorization", create_auth_header(bob_id).encode()),
        ],
        "client": ("testclient", 50000),
        "server": ("testserver", 80),
    }
    sent = []

    async def run() -> None:
        gone = asyncio.Event()
        request_sent = False

        async def receive():
            nonlocal request_sent
            if not request_sent:
                request_sent = True
                return {"type": "http.request", "body": b"", "more_body": False}
            await gone.wait()
            return {"type": "http.disconnect"}

        async def send(message):
            sent.append(message)

        task = asyncio.create_task(app(scope, receive, send))
        for _ in range(500):
            if broker.waiting_count(bob_id) == 1:
                break
            await asyncio.sleep(0.01)
        assert broker.waiting_count(bob_id) == 1

        gone.set()
        await asyncio.wait_for(task, 2)

    started = time.monotonic()
    asyncio.run(run())

    assert time.monotonic() - started < 4
    assert broker.waiting_count() == 0
    assert sent[0]["type"] == "http.response.start"
    assert sent[0]["status"] == 200
