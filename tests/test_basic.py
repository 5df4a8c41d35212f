"""
Basic tests for the Case & Report Tracker application.
"""

from casetrack import get_services


def test_app_creation(app):
    """Test that the app is created successfully."""
    assert app is not None
    assert app.config["TESTING"] is True


def test_services_are_scoped_to_the_app(app):
    services = get_services(app)
    assert services.writer.store.backend_names == ["local"]
    assert services.prosecutors.backend == "static"
    assert services.db_connection is None


def test_health_endpoint(client):
    """Test the health check endpoint."""
    response = client.get("/health")
    assert response.status_code == 200
    data = response.get_json()
    assert data["status"] == "ok"
    assert data["database"] == "disabled"
    assert data["persistence_backends"] == ["local"]


def test_correlation_id_header(client):
    response = client.get("/health")
    assert response.headers.get("X-Correlation-ID")
    assert response.headers["X-Content-Type-Options"] == "nosniff"


def test_unknown_route_returns_json_404(client):
    response = client.get("/no-such-page")
    assert response.status_code == 404
    assert response.get_json() == {"success": False, "error": "Not found"}


def test_api_requires_sign_in(client):
    response = client.get("/api/cases")
    assert response.status_code == 401
    assert response.get_json()["success"] is False
