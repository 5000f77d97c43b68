import pytest

from app.portal import create_app
from app.portal.db import session_scope
from app.portal.models import User


@pytest.fixture()
def client(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    monkeypatch.setenv("PASSWORD_HASH_METHOD", "pbkdf2:sha256:1000")
    monkeypatch.setenv("ADMIN_EMAIL", "admin@example.com")
    monkeypatch.setenv("ADMIN_PASSWORD", "admin-pw")

    app = create_app()
    c = app.test_client()
    c.post("/auth/signup", json={"name": "Alice", "email": "alice@x.com", "password": "pw123456"})
    return c


def _login(client):
    client.post("/auth/login", json={"email": "alice@x.com", "password": "pw123456"})


def test_profile_requires_auth(client):
    assert client.get("/api/user/profile").status_code == 401
    assert client.post("/api/user/update-profile", json={"institution": "UG"}).status_code == 401
    assert client.post("/api/user/save-gpa", json={"gpa": 3.2, "courses": []}).status_code == 401


def test_profile_update_scenario(client):
    _login(client)
    r = client.get("/api/user/profile")
    assert r.status_code == 200
    assert r.json["name"] == "Alice"
    assert r.json["email"] == "alice@x.com"
    assert "password" not in r.json
    assert "password_hash" not in r.json

    r = client.post(
        "/api/user/update-profile",
        json={
            "institution": "University of Ghana",
            "faculty": "Science",
            "department": "Computer Science",
            "program": "BSc",
            "level": "300",
            "financial": "Self",
            "entry": "2023",
            "completion": "2027",
        },
    )
    assert r.json == {"success": True}

    r = client.get("/api/user/profile")
    assert r.json["institution"] == "University of Ghana"
    assert r.json["financial_status"] == "Self"
    assert r.json["year_entry"] == "2023"
    assert r.json["year_completion"] == "2027"


def test_update_profile_ignores_privileged_fields(client):
    _login(client)
    client.post("/api/user/update-profile", json={"role": "ADMIN", "email": "evil@x.com", "institution": "KNUST"})
    r = client.get("/api/user/profile")
    assert r.json["role"] == "STUDENT"
    assert r.json["email"] == "alice@x.com"
    assert r.json["institution"] == "KNUST"


def test_save_gpa_and_courses(client):
    _login(client)
    courses = [
        {"code": "CS101", "grade": "A", "credits": 3},
        {"code": "MA102", "grade": "B+", "credits": 3},
    ]
    r = client.post("/api/user/save-gpa", json={"gpa": "3.756", "courses": courses})
    assert r.json == {"success": True}

    r = client.get("/api/user/profile")
    assert r.json["gpa"] == pytest.approx(3.76)
    assert r.json["courses"] == courses

    with session_scope(client.application) as s:
        u = s.query(User).filter(User.email == "alice@x.com").one()
        assert [c["code"] for c in u.courses] == ["CS101", "MA102"]


@pytest.mark.parametrize(
    "payload",
    [
        {"gpa": "abc", "courses": []},
        {"gpa": -1, "courses": []},
        {"gpa": 7, "courses": []},
        {"gpa": 3.0, "courses": "CS101"},
        {"courses": []},
    ],
)
def test_save_gpa_rejects_bad_input(client, payload):
    _login(client)
    r = client.post("/api/user/save-gpa", json=payload)
    assert r.status_code == 400
    assert "error" in r.json
