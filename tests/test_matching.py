import pytest

from app.crud.matching_crud import (
    DuplicateRequest,
    MatchingUserNotFound,
    RequestNotActive,
    RequestNotFound,
    SurveyNotFound,
)
from app.models.matching import Match, MatchRequest
from app.services import matching_service


def _request(meetup_type="1v1", **fields):
    data = {
        "meetup_type": meetup_type,
        "venue_type": "restaurant",
        "preferred_time": "dinner",
        "preferred_date": "2026-11-07",
        "max_distance": 5,
        "age_range_min": None,
        "age_range_max": None,
    }
    data.update(fields)
    return data


def _survey(topic="food", music="indie", personality="chill"):
    return {"favorite_conversation_topic": topic, "favorite_music": music, "personality_type": personality}


def test_survey_is_saved_once_per_user(db, make_user):
    user = make_user()

    matching_service.submit_survey(db, user.id, _survey(topic="travel"))
    survey = matching_service.submit_survey(db, user.id, _survey(topic="career"))

    db.expire_all()
    assert matching_service.get_survey(db, user.id).id == survey.id
    assert matching_service.get_survey(db, user.id).favorite_conversation_topic == "career"
    assert user.has_taken_survey is True

    with pytest.raises(SurveyNotFound):
        matching_service.get_survey(db, make_user().id)
    with pytest.raises(MatchingUserNotFound):
        matching_service.submit_survey(db, 999, _survey())


def test_personality_and_pair_scores(db, make_user):
    assert matching_service.personalities_compatible("outgoing", "adventurous")
    assert matching_service.personalities_compatible("chill", "chill")
    assert not matching_service.personalities_compatible("chill", "outgoing")
    assert not matching_service.personalities_compatible(None, "chill")

    a, b = make_user(), make_user()
    sa = matching_service.submit_survey(db, a.id, _survey("food", "pop", "outgoing"))
    sb = matching_service.submit_survey(db, b.id, _survey("food", "rock", "passionate"))
    assert matching_service.compatibility_score(sa, sb) == 40


def test_first_request_waits_second_one_matches(db, make_user):
    a, b = make_user(), make_user()
    matching_service.submit_survey(db, a.id, _survey("food", "pop", "outgoing"))
    matching_service.submit_survey(db, b.id, _survey("food", "pop", "adventurous"))

    first, none = matching_service.request_match(db, a.id, _request())
    assert none is None
    assert first.status == "active"

    second, match = matching_service.request_match(db, b.id, _request())

    assert match is not None
    assert match.match_score == 60
    assert {u.id for u in matching_service.list_members(db, match.id)} == {a.id, b.id}
    db.expire_all()
    assert db.get(MatchRequest, first.id).status == "matched"
    assert db.get(MatchRequest, second.id).status == "matched"
    assert [m.id for m, _ in matching_service.list_matches(db, a.id)] == [match.id]


def test_only_same_slot_and_type_match(db, make_user):
    a, b, c = make_user(), make_user(), make_user()
    matching_service.request_match(db, a.id, _request())
    _, other_day = matching_service.request_match(db, b.id, _request(preferred_date="2026-11-08"))
    _, other_type = matching_service.request_match(db, c.id, _request(meetup_type="group"))

    assert other_day is None
    assert other_type is None
    assert db.query(Match).count() == 0


def test_one_active_request_per_meetup_type(db, make_user):
    user = make_user()
    matching_service.request_match(db, user.id, _request())

    with pytest.raises(DuplicateRequest) as exc:
        matching_service.request_match(db, user.id, _request(preferred_time="lunch"))
    assert exc.value.status_code == 409

    other, _ = matching_service.request_match(db, user.id, _request(meetup_type="group"))
    assert other.status == "active"


def test_cancel_request(db, make_user):
    owner, stranger, late = make_user(), make_user(), make_user()
    request, _ = matching_service.request_match(db, owner.id, _request())

    with pytest.raises(RequestNotFound):
        matching_service.cancel_request(db, stranger.id, request.id)

    cancelled = matching_service.cancel_request(db, owner.id, request.id)
    assert cancelled.status == "cancelled"
    with pytest.raises(RequestNotActive):
        matching_service.cancel_request(db, owner.id, request.id)

    _, match = matching_service.request_match(db, late.id, _request())
    assert match is None


def test_age_ranges_must_agree_both_ways(db, make_user):
    young = make_user(age=22)
    older = make_user(age=40)
    peer = make_user(age=23)

    matching_service.request_match(db, young.id, _request(age_range_min=20, age_range_max=25))
    _, rejected = matching_service.request_match(db, older.id, _request())
    _, match = matching_service.request_match(db, peer.id, _request())

    assert rejected is None
    assert {u.id for u in matching_service.list_members(db, match.id)} == {young.id, peer.id}


def test_group_requests_fill_existing_match(db, make_user):
    a, b, c = make_user(), make_user(), make_user()
    matching_service.submit_survey(db, a.id, _survey("food", "pop", "chill"))
    matching_service.submit_survey(db, b.id, _survey("food", "pop", "chill"))

    matching_service.request_match(db, a.id, _request("group"))
    _, formed = matching_service.request_match(db, b.id, _request("group"))
    _, joined = matching_service.request_match(db, c.id, _request("group"))

    assert joined.id == formed.id
    assert len(matching_service.list_members(db, formed.id)) == 3
    # (a,b)=60, c는 설문 없음 → 세 쌍 평균 20
    assert joined.match_score == 20


def test_new_match_completes_previous_one(db, make_user):
    a, b, c = make_user(), make_user(), make_user()
    matching_service.request_match(db, a.id, _request())
    _, old = matching_service.request_match(db, b.id, _request())

    matching_service.request_match(db, c.id, _request())
    _, new = matching_service.request_match(db, a.id, _request())

    db.expire_all()
    assert db.get(Match, old.id).status == "completed"
    assert [m.id for m, _ in matching_service.list_matches(db, a.id)] == [new.id]
    assert matching_service.list_matches(db, b.id) == []


def test_matching_over_http(client):
    users = [
        client.post("/users", json={"username": name, "email": f"{name}@example.com", "age": 24}).json()
        for name in ("hana", "dool")
    ]
    hana, dool = users

    resp = client.post("/survey", json={"user_id": hana["id"], **_survey()})
    assert resp.status_code == 200
    assert client.get(f"/survey/{hana['id']}").json()["favorite_music"] == "indie"
    assert client.get(f"/users/{hana['id']}").json()["has_taken_survey"] is True
    assert client.get(f"/survey/{dool['id']}").status_code == 404
    assert client.post("/survey", json={"user_id": hana["id"], **_survey(music="jazz")}).status_code == 422

    body = {"user_id": hana["id"], **_request()}
    first = client.post("/matching-requests", json=body).json()
    assert first["match"] is None
    assert first["request"]["status"] == "active"
    assert client.post("/matching-requests", json=body).status_code == 409

    second = client.post("/matching-requests", json={**body, "user_id": dool["id"]}).json()
    assert second["message"] == "Matched"
    assert {u["username"] for u in second["match"]["users"]} == {"hana", "dool"}

    matches = client.get(f"/users/{dool['id']}/matches").json()
    assert [m["id"] for m in matches] == [second["match"]["id"]]
    assert client.get("/users/999/matches").status_code == 404

    resp = client.request(
        "DELETE", f"/matching-requests/{first['request']['id']}", json={"user_id": hana["id"]}
    )
    assert resp.status_code == 409  # 이미 matched


def test_cancel_over_http(client):
    user = client.post("/users", json={"username": "solo", "email": "solo@example.com"}).json()
    created = client.post("/matching-requests", json={"user_id": user["id"], **_request()}).json()
    url = f"/matching-requests/{created['request']['id']}"

    assert client.request("DELETE", url, json={"user_id": user["id"] + 1}).status_code == 404
    resp = client.request("DELETE", url, json={"user_id": user["id"]})
    assert resp.status_code == 200
    assert resp.json()["status"] == "cancelled"
    assert client.post("/matching-requests", json={"user_id": 999, **_request()}).status_code == 404
