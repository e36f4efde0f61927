from community_portal.config import Settings

PASSWORD = "TestPass123!"
ACCESS_SECRET = "test-access-secret-0123456789abcdef"
REFRESH_SECRET = "test-refresh-secret-fedcba9876543210"


def make_settings(**overrides) -> Settings:
    values = {
        "app_env": "test",
        "access_token_secret": ACCESS_SECRET,
        "refresh_token_secret": REFRESH_SECRET,
        "bcrypt_rounds": 4,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def set_cookie_headers(response) -> dict[str, str]:
    """Map cookie name -> full Set-Cookie header of a response."""
    headers = {}
    for header in response.headers.get_list("set-cookie"):
        name = header.split("=", 1)[0].strip()
        headers[name] = header
    return headers


def cookie_value(response, cookie_name: str) -> str | None:
    header = set_cookie_headers(response).get(cookie_name)
    if header is None:
        return None
    token_part = header.split(";", 1)[0]
    name, value = token_part.split("=", 1)
    assert name == cookie_name
    return value


def cookie_header(**cookies: str) -> dict[str, str]:
    return {"Cookie": "; ".join(f"{name}={value}" for name, value in cookies.items())}


def signup(client, name="Alice Resident", email="alice@example.com", phone="5550000001", password=PASSWORD):
    response = client.post(
        "/api/auth/signup",
        json={"name": name, "email": email, "phone": phone, "password": password},
    )
    assert response.status_code == 201, response.text
    client.cookies.clear()
    return response


def login(client, email="alice@example.com", password=PASSWORD):
    response = client.post("/api/auth/login", json={"email": email, "password": password})
    client.cookies.clear()
    return response
