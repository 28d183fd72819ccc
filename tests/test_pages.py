import re
from datetime import datetime, timedelta

from fastapi.testclient import TestClient

from launchbio.main import app
from launchbio.models.page import Page
from launchbio.models.session import UserSession
from launchbio.services import page_service
from launchbio.services.render_cache import RenderCache


def get_page(db, slug):
    db.expire_all()
    return db.query(Page).filter(Page.slug == slug).first()


def create(client, page_form, **overrides):
    response = client.post("/pages", data=page_form(**overrides))
    assert response.status_code == 201, response.text
    return response.json()


def use_expired_session(client, db, user):
    db.add(UserSession(token="expired-token", user_id=user.id, expires_at=datetime.utcnow() - timedelta(minutes=1)))
    db.commit()
    client.cookies.set("lb_session", "expired-token")


def assert_session_cookie_cleared(response):
    cookie = response.headers.get("set-cookie", "")
    assert cookie.startswith("lb_session=")
    assert "max-age=0" in cookie.lower()


# ========== TEST CREATE PAGE ==========
def test_create_page_end_to_end(client, db, page_form):
    """Création anonyme puis comptage d'une vue"""
    data = create(client, page_form, title="Test Launch", bgType="dark-gradient")
    assert re.fullmatch(r"test-launch-[a-z0-9]{6}", data["slug"])
    assert data["editToken"] and data["editToken"] != data["slug"]

    page = get_page(db, data["slug"])
    assert page.owner_id is None
    assert page.views == 0
    assert page.show_branding is True
    assert page.is_pro is False
    assert page.buttons == [{"label": "Join", "url": "https://example.com"}]

    response = client.post("/views", json={"slug": data["slug"]})
    assert response.status_code == 200
    assert response.json() == {"ok": True}
    assert get_page(db, data["slug"]).views == 1


def test_create_page_owned_by_current_user(client, db, make_user, login, page_form):
    user = make_user()
    login(client)

    data = create(client, page_form, ownerEmail="")
    page = get_page(db, data["slug"])
    assert page.owner_id == user.id
    assert page.owner_email is None


def test_create_page_invalid_data(client, page_form):
    response = client.post("/pages", data=page_form(title="A", buttons="[]"))
    assert response.status_code == 400
    body = response.json()
    assert body["detail"] == "Invalid data"
    fields = [err["field"] for err in body["errors"]]
    assert "title" in fields
    assert "buttons" in fields


def test_create_page_pro_theme_rejected(client, page_form):
    response = client.post("/pages", data=page_form(bgType="ocean-blue"))
    assert response.status_code == 403
    assert response.json()["detail"] == "PRO themes require Launch Pack upgrade"


def test_create_page_pro_field_rejected(client, page_form):
    response = client.post("/pages", data=page_form(analyticsId="G-123"))
    assert response.status_code == 403


def test_create_page_retries_on_slug_collision(client, db, page_form, monkeypatch):
    existing = create(client, page_form)
    slugs = iter([existing["slug"], "fresh-launch-abc123"])
    monkeypatch.setattr(page_service, "generate_slug", lambda title: next(slugs))

    data = create(client, page_form)
    assert data["slug"] == "fresh-launch-abc123"


def test_create_page_gives_up_after_repeated_collisions(client, page_form, monkeypatch):
    existing = create(client, page_form)
    monkeypatch.setattr(page_service, "generate_slug", lambda title: existing["slug"])

    response = client.post("/pages", data=page_form())
    assert response.status_code == 500
    assert "detail" in response.json()


# ========== TEST UPDATE PAGE ==========
def test_update_anonymous_page_with_token(client, db, page_form):
    data = create(client, page_form)

    response = client.put(f"/pages/{data['editToken']}", data=page_form(title="New title", eventTime="18:30"))
    assert response.status_code == 200
    body = response.json()
    assert body["title"] == "New title"
    assert body["slug"] == data["slug"]
    assert body["event_datetime"].startswith("2030-12-31T18:30")


def test_update_owned_page_requires_owner(client, db, make_user, login, page_form):
    """U1 possède la page : U2 et un anonyme sont refusés, U1 accepté"""
    make_user("u1@example.com")
    make_user("u2@example.com")

    login(client, "u1@example.com")
    data = create(client, page_form)
    token = data["editToken"]

    other = TestClient(app)
    login(other, "u2@example.com")
    response = other.put(f"/pages/{token}", data=page_form(title="Hijacked"))
    assert response.status_code == 401
    assert response.json()["detail"] == "Unauthorized"

    anonymous = TestClient(app)
    response = anonymous.put(f"/pages/{token}", data=page_form(title="Hijacked"))
    assert response.status_code == 401
    assert response.json()["detail"] == "Unauthorized"

    response = client.put(f"/pages/{token}", data=page_form(title="Mine"))
    assert response.status_code == 200
    assert get_page(db, data["slug"]).title == "Mine"


def test_update_page_not_found(client, page_form):
    response = client.put("/pages/unknown-token", data=page_form())
    assert response.status_code == 404
    assert response.json()["detail"] == "Page not found"


def test_update_free_page_pro_theme_rejected(client, db, page_form):
    data = create(client, page_form)
    response = client.put(f"/pages/{data['editToken']}", data=page_form(bgType="midnight-neon"))
    assert response.status_code == 403
    assert get_page(db, data["slug"]).bg_type == "dark-gradient"


def test_update_pro_page_unlocks_options(client, db, page_form):
    data = create(client, page_form)
    page_service.mark_pro(db, data["editToken"])

    response = client.put(f"/pages/{data['editToken']}", data=page_form(
        bgType="midnight-neon", afterLaunchText="We are live!", analyticsId="G-123", showBranding="true"
    ))
    assert response.status_code == 200
    body = response.json()
    assert body["bg_type"] == "midnight-neon"
    assert body["after_launch_text"] == "We are live!"
    assert body["show_branding"] is True


def test_update_pro_page_unchecked_branding(client, db, page_form):
    """Case décochée = champ absent du formulaire = branding retiré"""
    data = create(client, page_form)
    page_service.mark_pro(db, data["editToken"])

    response = client.put(f"/pages/{data['editToken']}", data=page_form(showBranding="true"))
    assert response.json()["show_branding"] is True

    response = client.put(f"/pages/{data['editToken']}", data=page_form())
    assert response.status_code == 200
    assert response.json()["show_branding"] is False


def test_update_owned_page_with_expired_session(client, db, make_user, login, page_form):
    user = make_user()
    login(client)
    data = create(client, page_form)
    client.cookies.clear()
    use_expired_session(client, db, user)

    response = client.put(f"/pages/{data['editToken']}", data=page_form(title="Late"))
    assert response.status_code == 401
    assert_session_cookie_cleared(response)


def test_update_free_page_keeps_branding(client, db, page_form):
    data = create(client, page_form)
    response = client.put(f"/pages/{data['editToken']}", data=page_form(showBranding="false"))
    assert response.status_code == 200
    assert response.json()["show_branding"] is True


# ========== TEST VUES ==========
def test_public_page_hides_secrets(client, page_form):
    data = create(client, page_form)
    response = client.get(f"/u/{data['slug']}")
    assert response.status_code == 200
    body = response.json()
    assert body["title"] == "Test Launch"
    assert "edit_token" not in body
    assert "owner_id" not in body


def test_public_page_not_found(client):
    assert client.get("/u/nope-000000").status_code == 404


def test_public_page_cached_until_revalidated(client, db, page_form):
    data = create(client, page_form)
    assert client.get(f"/u/{data['slug']}").json()["title"] == "Test Launch"

    # modification hors du chemin normal : le rendu reste en cache
    page = get_page(db, data["slug"])
    page.title = "Changed directly"
    db.commit()
    assert client.get(f"/u/{data['slug']}").json()["title"] == "Test Launch"

    response = client.post("/revalidate", json={"editToken": data["editToken"]})
    assert response.json() == {"ok": True}
    assert client.get(f"/u/{data['slug']}").json()["title"] == "Changed directly"


def test_update_invalidates_public_page(client, page_form):
    data = create(client, page_form)
    client.get(f"/u/{data['slug']}")
    client.put(f"/pages/{data['editToken']}", data=page_form(title="Updated"))
    assert client.get(f"/u/{data['slug']}").json()["title"] == "Updated"


def test_edit_view_owned_page(client, make_user, login, page_form):
    make_user()
    login(client)
    data = create(client, page_form)

    response = client.get(f"/edit/{data['editToken']}")
    assert response.status_code == 200
    assert response.json()["edit_token"] == data["editToken"]

    anonymous = TestClient(app)
    assert anonymous.get(f"/edit/{data['editToken']}").status_code == 401


def test_edit_view_shows_current_views(client, page_form):
    data = create(client, page_form)
    assert client.get(f"/edit/{data['editToken']}").json()["views"] == 0

    assert client.post("/views", json={"slug": data["slug"]}).status_code == 200
    assert client.get(f"/edit/{data['editToken']}").json()["views"] == 1


def test_render_cache_is_bounded():
    cache = RenderCache(maxsize=2, ttl=60)
    for slug in ["a", "b", "c"]:
        cache.get_or_render(f"/u/{slug}", lambda: {"slug": slug})
    assert len(cache) == 2
    assert cache.get("/u/c") == {"slug": "c"}


def test_checkout_success_view(client, page_form):
    data = create(client, page_form)
    response = client.get("/edit/success", params={"editToken": data["editToken"]})
    assert response.json()["page"]["slug"] == data["slug"]
    assert response.json()["page"]["isPro"] is False
    assert client.get("/edit/success").json() == {"page": None}


# ========== TEST DASHBOARD ==========
def test_dashboard_lists_own_pages(client, make_user, login, page_form):
    make_user()
    login(client)
    first = create(client, page_form, title="First")
    second = create(client, page_form, title="Second")
    create(TestClient(app), page_form, title="Someone else")

    response = client.get("/dashboard")
    assert response.status_code == 200
    slugs = [page["slug"] for page in response.json()]
    assert slugs == [second["slug"], first["slug"]]


def test_dashboard_requires_login(client):
    response = client.get("/dashboard")
    assert response.status_code == 401


def test_dashboard_with_expired_session_clears_cookie(client, db, make_user):
    """Session expirée : 401, ligne supprimée et cookie effacé sur la réponse d'erreur"""
    use_expired_session(client, db, make_user())

    response = client.get("/dashboard")
    assert response.status_code == 401
    assert_session_cookie_cleared(response)
    assert db.query(UserSession).filter(UserSession.token == "expired-token").first() is None


# ========== TEST /views et /revalidate ==========
def test_views_missing_slug(client):
    response = client.post("/views", json={})
    assert response.status_code == 400
    assert response.json() == {"ok": False}


def test_views_unknown_slug(client):
    response = client.post("/views", json={"slug": "ghost-000000"})
    assert response.status_code == 500
    assert response.json() == {"ok": False}


def test_views_only_increase(client, db, page_form):
    data = create(client, page_form)
    for _ in range(3):
        client.post("/views", json={"slug": data["slug"]})
    assert get_page(db, data["slug"]).views == 3


def test_revalidate_missing_and_unknown(client):
    assert client.post("/revalidate", json={}).status_code == 400
    response = client.post("/revalidate", json={"editToken": "unknown"})
    assert response.status_code == 200
    assert response.json() == {"ok": True}
