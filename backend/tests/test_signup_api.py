"""Signup wizard endpoint tests."""

import pytest
from httpx import AsyncClient

from jikjikjik import messages
from jikjikjik.clients.backend import ApiConfig

from conftest import AUTH_CODE, join_request_json

PHONE = "010-1234-5678"


async def open_session(client: AsyncClient) -> str:
    resp = await client.post("/api/signup/sessions")
    assert resp.status_code == 201
    return resp.json()["progress"]["session_id"]


async def verified_session(client: AsyncClient) -> str:
    sid = await open_session(client)
    resp = await client.post(f"/api/signup/sessions/{sid}/verification/code", json={"phone": PHONE})
    assert resp.status_code == 200
    resp = await client.post(f"/api/signup/sessions/{sid}/verification/confirm", json={"code": AUTH_CODE})
    assert resp.status_code == 200
    return sid


@pytest.mark.api
@pytest.mark.asyncio
class TestSessions:

    async def test_open_session(self, client: AsyncClient):
        """POST /sessions returns step 1 and the initial control states."""
        resp = await client.post("/api/signup/sessions")
        assert resp.status_code == 201
        data = resp.json()

        progress = data["progress"]
        assert progress["current_step"] == 1
        assert progress["total_steps"] == 7
        assert progress["step_title"] == "휴대폰 인증"
        assert progress["indicators"][0] == "active"
        assert progress["verification"]["state"] == "idle"

        controls = {e["control"]: e for e in data["effects"]}
        assert controls["send_code"]["enabled"] is True
        assert controls["next"]["enabled"] is False
        assert controls["next"]["label"] == messages.LABEL_NEXT_LOCKED

    async def test_get_and_delete(self, client: AsyncClient, session_store):
        sid = await open_session(client)

        resp = await client.get(f"/api/signup/sessions/{sid}")
        assert resp.status_code == 200
        assert resp.json()["session_id"] == sid

        resp = await client.delete(f"/api/signup/sessions/{sid}")
        assert resp.status_code == 204
        assert len(session_store) == 0

        resp = await client.get(f"/api/signup/sessions/{sid}")
        assert resp.status_code == 404

    async def test_unknown_session(self, client: AsyncClient):
        resp = await client.post("/api/signup/sessions/nope/steps/next")
        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "RESOURCE_NOT_FOUND"

    async def test_idle_session_expires(self, client: AsyncClient, clock):
        sid = await open_session(client)
        clock.advance(1801)

        resp = await client.get(f"/api/signup/sessions/{sid}")
        assert resp.status_code == 404


@pytest.mark.api
@pytest.mark.asyncio
class TestVerificationRoutes:

    async def test_request_and_confirm(self, client: AsyncClient, fake_backend):
        sid = await open_session(client)

        resp = await client.post(
            f"/api/signup/sessions/{sid}/verification/code", json={"phone": PHONE}
        )
        assert resp.status_code == 200
        verification = resp.json()["progress"]["verification"]
        assert verification["state"] == "code_sent"
        assert verification["time_left"] == "03:00"
        assert verification["phone"] == "01012345678"

        resp = await client.post(
            f"/api/signup/sessions/{sid}/verification/confirm", json={"code": f" {AUTH_CODE} "}
        )
        assert resp.status_code == 200
        assert resp.json()["progress"]["verification"]["verified"] is True

        resp = await client.post(f"/api/signup/sessions/{sid}/steps/next")
        assert resp.json()["progress"]["current_step"] == 2

    async def test_bad_phone_envelope(self, client: AsyncClient, fake_backend):
        """Local validation errors use the error envelope with the field name."""
        sid = await open_session(client)

        resp = await client.post(
            f"/api/signup/sessions/{sid}/verification/code", json={"phone": "010-12-34"}
        )
        assert resp.status_code == 422
        error = resp.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        assert error["message"] == messages.PHONE_FORMAT
        assert error["details"] == {"field": "phone"}
        assert fake_backend.requests == []

    async def test_duplicate_phone_is_409(self, client: AsyncClient, fake_backend):
        fake_backend.respond(ApiConfig.PHONE_VALIDATION_ENDPOINT, 409, {
            "data": {
                "status": "CONFLICT",
                "code": "MEMBER-005",
                "errorMessage": "이미 등록된 핸드폰 번호입니다.",
            },
        })
        sid = await open_session(client)

        resp = await client.post(
            f"/api/signup/sessions/{sid}/verification/code", json={"phone": PHONE}
        )
        assert resp.status_code == 409
        assert resp.json()["error"] == {
            "code": "MEMBER-005",
            "message": "이미 등록된 핸드폰 번호입니다.",
        }
        controls = {e["control"]: e for e in resp.json()["effects"] if e["type"] == "control"}
        assert controls["send_code"]["enabled"] is True

        resp = await client.get(f"/api/signup/sessions/{sid}")
        assert resp.json()["verification"]["state"] == "failed"

    async def test_backend_down_is_502(self, client: AsyncClient, fake_backend):
        fake_backend.fail(ApiConfig.PHONE_VALIDATION_ENDPOINT)
        sid = await open_session(client)

        resp = await client.post(
            f"/api/signup/sessions/{sid}/verification/code", json={"phone": PHONE}
        )
        assert resp.status_code == 502
        assert resp.json()["error"]["message"] == messages.NETWORK_ERROR

    async def test_resend_without_body(self, client: AsyncClient, clock):
        sid = await open_session(client)
        await client.post(f"/api/signup/sessions/{sid}/verification/code", json={"phone": PHONE})

        resp = await client.post(f"/api/signup/sessions/{sid}/verification/resend")
        assert resp.status_code == 422
        assert resp.json()["error"]["message"] == messages.RESEND_NOT_READY

        clock.advance(30)
        resp = await client.post(f"/api/signup/sessions/{sid}/verification/resend")
        assert resp.status_code == 200

    async def test_missing_code_is_request_validation_error(self, client: AsyncClient):
        sid = await open_session(client)
        resp = await client.post(f"/api/signup/sessions/{sid}/verification/confirm", json={})
        assert resp.status_code == 422
        assert "errors" in resp.json()["error"]["details"]

    async def test_confirm_after_expiry_carries_expiry_effects(
        self, client: AsyncClient, session_store
    ):
        sid = await open_session(client)
        await client.post(f"/api/signup/sessions/{sid}/verification/code", json={"phone": PHONE})
        flow = session_store.get(sid).flow
        while flow.tick():
            pass

        resp = await client.post(
            f"/api/signup/sessions/{sid}/verification/confirm", json={"code": AUTH_CODE}
        )

        assert resp.status_code == 422
        data = resp.json()
        assert data["error"]["message"] == messages.CODE_EXPIRED
        first = data["effects"][0]
        assert (first["type"], first["message"], first["level"]) == (
            "notification", messages.CODE_EXPIRED, "error"
        )
        send_code = [e for e in data["effects"] if e["control"] == "send_code"]
        assert send_code[-1]["enabled"] is True

        # Queued effects are not repeated on the next event
        resp = await client.post(f"/api/signup/sessions/{sid}/steps/prev")
        assert resp.json()["effects"] == []


@pytest.mark.api
@pytest.mark.asyncio
class TestFormRoutes:

    async def test_patch_fields(self, client: AsyncClient):
        sid = await open_session(client)

        resp = await client.patch(f"/api/signup/sessions/{sid}/fields", json={
            "workerName": "김철수",
            "phoneNumber": "01012345678",
            "password": "password123",
        })
        assert resp.status_code == 200
        fields = resp.json()["progress"]["fields"]
        assert fields == {"workerName": "김철수", "phoneNumber": "010-1234-5678"}

        # Partial update keeps earlier values
        resp = await client.patch(f"/api/signup/sessions/{sid}/fields", json={"gender": "male"})
        assert resp.json()["progress"]["fields"]["workerName"] == "김철수"

    async def test_introduction_limit(self, client: AsyncClient):
        sid = await open_session(client)
        resp = await client.patch(
            f"/api/signup/sessions/{sid}/fields", json={"introduction": "가" * 501}
        )
        assert resp.status_code == 422

    async def test_step_error_names_field(self, client: AsyncClient):
        sid = await verified_session(client)
        await client.post(f"/api/signup/sessions/{sid}/steps/next")

        resp = await client.post(f"/api/signup/sessions/{sid}/steps/next")
        assert resp.status_code == 422
        assert resp.json()["error"]["details"] == {"field": "workerName"}

    async def test_prev_and_reset(self, client: AsyncClient):
        sid = await verified_session(client)
        await client.post(f"/api/signup/sessions/{sid}/steps/next")

        resp = await client.post(f"/api/signup/sessions/{sid}/steps/prev")
        assert resp.json()["progress"]["current_step"] == 1

        resp = await client.post(f"/api/signup/sessions/{sid}/reset")
        assert resp.json()["progress"]["verification"]["verified"] is False


@pytest.mark.api
@pytest.mark.asyncio
class TestExperienceRoutes:

    async def test_add_and_remove(self, client: AsyncClient):
        sid = await open_session(client)

        resp = await client.post(
            f"/api/signup/sessions/{sid}/experiences", json={"skill": "tile", "years": 3}
        )
        assert resp.status_code == 200
        [row] = resp.json()["progress"]["experiences"]
        assert row["skill_name"] == "타일공"
        assert row["years_text"] == "2년 이상 ~ 3년 미만"

        resp = await client.delete(f"/api/signup/sessions/{sid}/experiences/{row['id']}")
        assert resp.status_code == 200
        assert resp.json()["effects"][0]["message"] == messages.EXPERIENCE_DELETE_PROMPT
        assert len(resp.json()["progress"]["experiences"]) == 1

        resp = await client.delete(
            f"/api/signup/sessions/{sid}/experiences/{row['id']}",
            params={"confirmed": "true"},
        )
        assert resp.json()["progress"]["experiences"] == []

    async def test_empty_dialog(self, client: AsyncClient):
        sid = await open_session(client)
        resp = await client.post(f"/api/signup/sessions/{sid}/experiences", json={})
        assert resp.status_code == 422
        assert resp.json()["error"]["message"] == messages.SELECT_EXPERIENCE_SKILL

    async def test_duplicate(self, client: AsyncClient):
        sid = await open_session(client)
        await client.post(f"/api/signup/sessions/{sid}/experiences", json={"skill": "tile", "years": 3})
        resp = await client.post(
            f"/api/signup/sessions/{sid}/experiences", json={"skill": "tile", "years": 5}
        )
        assert resp.status_code == 422
        assert resp.json()["error"]["message"] == messages.EXPERIENCE_DUPLICATE


@pytest.mark.api
@pytest.mark.integration
@pytest.mark.asyncio
class TestSubmitRoute:

    async def test_full_signup(self, client: AsyncClient, fake_backend):
        sid = await verified_session(client)
        await client.patch(f"/api/signup/sessions/{sid}/fields", json={
            "workerName": "김철수",
            "birthDate": "1980-05-05",
            "gender": "male",
            "nationality": "korean",
            "address": "서울특별시 중구 세종대로 110",
            "bankName": "신한은행",
            "accountNumber": "110123456789",
            "accountHolder": "김철수",
            "email": "worker@example.com",
            "password": "password123",
            "passwordConfirm": "password123",
            "terms": True,
        })
        await client.post(f"/api/signup/sessions/{sid}/experiences", json={"skill": "rebar", "years": 8})

        for expected in range(2, 8):
            resp = await client.post(f"/api/signup/sessions/{sid}/steps/next")
            assert resp.json()["progress"]["current_step"] == expected

        resp = await client.post(f"/api/signup/sessions/{sid}/submit")
        assert resp.status_code == 200
        data = resp.json()
        assert data["progress"]["submitted"] is True
        assert {"type": "navigate", "page": "login"}.items() <= data["effects"][-1].items()

        body = join_request_json(fake_backend.calls(ApiConfig.WORKER_JOIN_ENDPOINT)[0])
        assert body["loginId"] == "01012345678"
        assert body["workerName"] == "김철수"
        assert body["workExperienceRequest"] == [
            {"tech": "REBAR_WORKER", "experienceMonths": 96},
        ]

    async def test_submit_unverified(self, client: AsyncClient, fake_backend):
        sid = await open_session(client)
        resp = await client.post(f"/api/signup/sessions/{sid}/submit")
        assert resp.status_code == 422
        assert resp.json()["error"]["message"] == messages.VERIFY_PHONE_FIRST
        assert fake_backend.calls(ApiConfig.WORKER_JOIN_ENDPOINT) == []

    async def test_submit_from_first_step_refused(self, client: AsyncClient, fake_backend):
        sid = await verified_session(client)
        await client.patch(f"/api/signup/sessions/{sid}/fields", json={
            "email": "worker@example.com", "password": "x",
        })

        resp = await client.post(f"/api/signup/sessions/{sid}/submit")

        assert resp.status_code == 422
        assert resp.json()["error"]["message"] == messages.SUBMIT_FROM_LAST_STEP
        assert fake_backend.calls(ApiConfig.WORKER_JOIN_ENDPOINT) == []
