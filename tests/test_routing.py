from fastapi import FastAPI
from fastapi.responses import PlainTextResponse
from fastapi.testclient import TestClient

from sq_portal.login_logic import add_logout_route, build_sign_in_url, sanitize_redirect_target
from sq_portal.mount_gradio_app import add_middleware_redirect
from sq_portal.pages.header import render_header
from sq_portal.privileges import required_role_for_route, resolve_nav_links
from sq_portal.session import RequiredRole, SessionClaims


def _app(config, route):
    app = FastAPI()

    @app.get(f"{route}/")
    async def page():
        return PlainTextResponse("page")

    @app.get(f"{route}/gradio_api/info")
    async def gradio_internal():
        return PlainTextResponse("internal")

    add_middleware_redirect(app, route, config)
    add_logout_route(app, config)
    return app


def test_upload_page_redirects_anonymous_visitors_to_sign_in(config):
    client = TestClient(_app(config, "/upload"))

    response = client.get("/upload/", follow_redirects=False)

    assert response.status_code == 307
    assert response.headers["location"] == "/login?redirect_to=/upload/"


def test_upload_page_lets_signed_in_users_through(config, user_token):
    client = TestClient(_app(config, "/upload"))
    client.cookies.set("token", user_token)

    response = client.get("/upload/", follow_redirects=False)

    assert response.status_code == 200
    assert response.text == "page"


def test_gradio_internals_are_not_redirected(config):
    client = TestClient(_app(config, "/upload"))

    response = client.get("/upload/gradio_api/info", follow_redirects=False)

    assert response.status_code == 200


def test_admin_page_renders_its_own_denial(config):
    client = TestClient(_app(config, "/announcement-edit"))

    response = client.get("/announcement-edit/", follow_redirects=False)

    assert response.status_code == 200


def test_logout_clears_token_cookie(config, user_token):
    client = TestClient(_app(config, "/upload"))
    client.cookies.set("token", user_token)

    response = client.get("/logout", follow_redirects=False)

    assert response.status_code == 307
    assert 'token=""' in response.headers["set-cookie"]


def test_sign_in_url_rejects_foreign_redirects(config):
    assert sanitize_redirect_target("//evil.example/x", config) is None
    assert sanitize_redirect_target("https://evil.example/x", config) is None
    assert sanitize_redirect_target("https://tracker.example/upload/", config) == "https://tracker.example/upload/"
    assert build_sign_in_url(config, "https://evil.example") == "/login?redirect_to=/upload/"


def test_route_roles_and_navigation():
    assert required_role_for_route("/upload/") is RequiredRole.ANY_AUTHENTICATED
    assert required_role_for_route("/announcement-edit") is RequiredRole.ADMIN
    assert required_role_for_route("/nowhere") is None
    assert [link.key for link in resolve_nav_links(SessionClaims("user", "1"))] == ["upload"]
    assert resolve_nav_links(None) == []


def test_header_shows_sign_in_or_sign_out(config):
    anonymous = render_header("/upload", None, config)
    signed_in = render_header("/upload", SessionClaims("admin", "1"), config)

    assert "Sign in" in anonymous
    assert "Sign out" in signed_in
    assert "Signed in as admin" in signed_in
    assert 'aria-current="page"' in signed_in
