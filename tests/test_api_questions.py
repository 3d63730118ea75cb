import uuid

from app.models import Response, User
from app.services.tag_service import tag_service

OPTIONS = [
    {"id": "o2", "text": "Money", "value": "money", "order": 2, "tags": ["Finance"]},
    {"id": "o1", "text": "Calm", "value": "calm", "order": 1, "tags": ["Mindfulness", "Health"]},
]


def test_list_questions_orders_options(client, make_question):
    make_question(OPTIONS, title="Second", order=2)
    make_question(OPTIONS, title="First", order=1)

    r = client.get("/api/questions/list")

    assert r.status_code == 200
    body = r.json()
    assert [q["title"] for q in body] == ["First", "Second"]
    assert [o["id"] for o in body[0]["options"]] == ["o1", "o2"]
    assert "user_answer" not in body[0] or body[0]["user_answer"] is None


def test_guest_submission_generates_identifier(client, db, make_question):
    question = make_question(OPTIONS)

    r = client.post("/api/questions/submit", json={
        "answers": [{"question_id": str(question.id), "values": ["calm"]}],
    })

    assert r.status_code == 201
    guest_identifier = r.json()["guest_identifier"]
    assert r.json()["tags_added"] == []
    stored = db.query(Response).one()
    assert stored.guest_identifier == guest_identifier
    assert stored.meta["userIdentifier"] == guest_identifier
    assert stored.user_id is None

    r = client.get("/api/questions/list", headers={"X-Guest-Identifier": guest_identifier})
    assert r.json()[0]["user_answer"]["values"] == ["calm"]


def test_user_submission_adds_chosen_tags(client, db, make_user, make_question, auth_headers_for):
    user = make_user()
    question = make_question(OPTIONS)

    r = client.post(
        "/api/questions/submit",
        json={"answers": [{"question_id": str(question.id), "values": ["o1", "Money"]}]},
        headers=auth_headers_for(user),
    )

    assert r.status_code == 201
    assert len(r.json()["tags_added"]) == 3
    assert "guest_identifier" not in r.json()
    db.expire_all()
    refreshed = db.query(User).filter(User.id == user.id).one()
    assert sorted(tag_service.tag_names_for_ids(db, refreshed.chosen_tags)) == [
        "Finance", "Health", "Mindfulness"
    ]

    # resubmitting the same answers adds nothing new
    r = client.post(
        "/api/questions/submit",
        json={"answers": [{"question_id": str(question.id), "values": ["o1"]}]},
        headers=auth_headers_for(user),
    )
    assert r.json()["tags_added"] == []


def test_guest_answers_merge_on_register(client, db, make_question):
    question = make_question(OPTIONS)
    r = client.post(
        "/api/questions/submit",
        json={"answers": [{"question_id": str(question.id), "values": ["money"]}]},
        headers={"X-Guest-Identifier": "guest-quiz"},
    )
    assert r.status_code == 201

    r = client.post(
        "/api/auth/register",
        json={
            "full_name": "Quiz Taker",
            "email": "quiz@example.com",
            "phone": "+15557654321",
            "password": "long-enough",
        },
        headers={"X-Guest-Identifier": "guest-quiz"},
    )

    assert r.status_code == 201
    merged = r.json()["merged"]
    assert merged["responses_moved"] == 1
    assert len(merged["tags_added"]) == 1
    assert len(r.json()["user"]["chosen_tags"]) == 1


def test_submit_unknown_question(client):
    r = client.post(
        "/api/questions/submit",
        json={"answers": [{"question_id": str(uuid.uuid4()), "values": ["x"]}]},
        headers={"X-Guest-Identifier": "guest-q"},
    )

    assert r.status_code == 400
    assert r.json()["error"] == "invalid_argument"


def test_submit_requires_answers(client):
    r = client.post("/api/questions/submit", json={"answers": []})

    assert r.status_code == 422


def test_my_responses_only_lists_own_submissions(client, make_user, make_question, auth_headers_for):
    question = make_question(OPTIONS)
    user = make_user()
    submissions = [
        ({"X-Guest-Identifier": "guest-mine"}, "calm"),
        ({"X-Guest-Identifier": "guest-other"}, "money"),
        (auth_headers_for(user), "o2"),
    ]
    for headers, value in submissions:
        r = client.post(
            "/api/questions/submit",
            json={"answers": [{"question_id": str(question.id), "values": [value]}]},
            headers=headers,
        )
        assert r.status_code == 201

    r = client.get("/api/questions/me", headers={"X-Guest-Identifier": "guest-mine"})
    assert r.status_code == 200
    assert [a["values"] for a in r.json()[0]["answers"]] == [["calm"]]
    assert len(r.json()) == 1
    assert r.json()[0]["meta"]["userIdentifier"] == "guest-mine"

    r = client.get("/api/questions/me", headers=auth_headers_for(user))
    assert len(r.json()) == 1
    assert r.json()[0]["answers"][0]["question_id"] == str(question.id)
    assert r.json()[0]["answers"][0]["values"] == ["o2"]


def test_my_responses_requires_identity(client):
    r = client.get("/api/questions/me")

    assert r.status_code == 401
