from __future__ import annotations

SECRET = "test-secret-key-with-at-least-sixty-four-bytes-for-every-hmac-variant"


class Clock:
    """Settable clock for expiry tests."""

    def __init__(self, start):
        self.current = start

    def __call__(self):
        return self.current

    def advance(self, delta):
        self.current = self.current + delta


def cookie_value(response, name="refresh_token"):
    """Value of a cookie set by the response, or None."""
    for header in response.headers.getlist("Set-Cookie"):
        key, _, rest = header.partition("=")
        if key == name:
            return rest.split(";", 1)[0]
    return None


def register_and_login(client, email="a@example.com", password="password123", **extra):
    r = client.post("/api/v1/auth/register", json={"email": email, "password": password})
    assert r.status_code == 201, r.get_data(as_text=True)
    r = client.post("/api/v1/auth/login", json={"email": email, "password": password, **extra})
    assert r.status_code == 200, r.get_data(as_text=True)
    return r


def bearer(client, email="a@example.com", password="password123"):
    """Register, log in and return the Authorization header for the account."""
    access = register_and_login(client, email, password).get_json()["access_token"]
    return {"Authorization": f"Bearer {access}"}
