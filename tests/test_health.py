"""Smoke test for application startup."""


def test_app_imports() -> None:
    """Verify the app can be imported without errors."""
    from cardnexus.main import app

    assert app.title == "Card Nexus"


def test_routes_registered() -> None:
    from cardnexus.main import app

    paths = {route.path for route in app.routes}

    for path in ("/cards", "/sets", "/listings", "/users/{user_id}", "/auth/signup"):
        assert path in paths
    for path in ("/decks/{deck_id}/like", "/board/{post_id}/comments", "/ready"):
        assert path in paths
