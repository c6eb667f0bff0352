def test_health_check(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


def test_api_v1_surveys_requires_auth(client):
    """Surveys router is mounted and protected."""
    response = client.get("/api/v1/surveys/")
    assert response.status_code in (401, 403)


def test_api_v1_widget_config(client):
    """Widgets router is mounted; unknown tokens are 404."""
    response = client.get(f"/api/v1/widgets/to_{'0' * 32}/config")
    assert response.status_code == 404
    assert response.json() == {"detail": "Survey token not found or inactive", "errors": []}


def test_api_v1_submit_validates_body(client):
    response = client.post("/api/v1/responses/submit", json={})
    assert response.status_code == 422


def test_openapi_under_prefix(client):
    response = client.get("/api/v1/openapi.json")
    assert response.status_code == 200
    assert "/api/v1/surveys/" in response.json()["paths"]
