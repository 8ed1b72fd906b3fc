"""Tests for module registry API."""

from httpx import AsyncClient

from tests.conftest import auth_header


class TestReadModules:
    """Tests for module listing and inspection."""

    async def test_list_modules(self, client: AsyncClient, admin_token: str):
        response = await client.get("/api/v1/modules", headers=auth_header(admin_token))

        assert response.status_code == 200
        modules = {m["config"]["name"]: m for m in response.json()}
        assert len(modules) == 9
        assert modules["communication"]["status"] == "disabled"
        assert modules["fee-management"]["status"] == "loaded"

    async def test_filters(self, client: AsyncClient, admin_token: str):
        response = await client.get(
            "/api/v1/modules",
            headers=auth_header(admin_token),
            params={"category": "core"},
        )
        assert {m["config"]["name"] for m in response.json()} == {"core", "security"}

        response = await client.get(
            "/api/v1/modules",
            headers=auth_header(admin_token),
            params={"enabled_only": True},
        )
        names = {m["config"]["name"] for m in response.json()}
        assert "communication" not in names
        assert len(names) == 8

    async def test_stats(self, client: AsyncClient, admin_token: str):
        response = await client.get("/api/v1/modules/stats", headers=auth_header(admin_token))

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 9
        assert data["enabled"] == 8
        assert data["errors"] == 0

    async def test_health(self, client: AsyncClient, admin_token: str):
        response = await client.get("/api/v1/modules/health", headers=auth_header(admin_token))

        assert response.status_code == 200
        health = response.json()
        assert "communication" not in health
        assert {h["status"] for h in health.values()} == {"healthy"}

    async def test_get_module(self, client: AsyncClient, admin_token: str):
        response = await client.get(
            "/api/v1/modules/student-management",
            headers=auth_header(admin_token),
        )

        assert response.status_code == 200
        data = response.json()
        assert data["dependencies"] == ["core"]
        assert {"fee-management", "portals"} <= set(data["dependents"])
        assert data["can_disable"] is False

    async def test_get_unknown_module(self, client: AsyncClient, admin_token: str):
        response = await client.get("/api/v1/modules/payroll", headers=auth_header(admin_token))

        assert response.status_code == 404
        assert response.json()["detail"] == "Module 'payroll' not found"

    async def test_teacher_cannot_read(self, client: AsyncClient, teacher_token: str):
        response = await client.get("/api/v1/modules", headers=auth_header(teacher_token))
        assert response.status_code == 403


class TestToggleModules:
    """Tests for enabling and disabling modules."""

    async def test_admin_cannot_toggle(self, client: AsyncClient, admin_token: str):
        response = await client.post(
            "/api/v1/modules/reporting/disable",
            headers=auth_header(admin_token),
        )
        assert response.status_code == 403

    async def test_disable_and_enable(self, client: AsyncClient, superadmin_token: str):
        response = await client.post(
            "/api/v1/modules/reporting/disable",
            headers=auth_header(superadmin_token),
        )

        assert response.status_code == 200
        assert response.json()["status"] == "disabled"
        assert response.json()["config"]["enabled"] is False

        response = await client.post(
            "/api/v1/modules/reporting/enable",
            headers=auth_header(superadmin_token),
        )

        assert response.status_code == 200
        assert response.json()["status"] == "loaded"

    async def test_cannot_disable_required_module(
        self, client: AsyncClient, superadmin_token: str
    ):
        response = await client.post(
            "/api/v1/modules/student-management/disable",
            headers=auth_header(superadmin_token),
        )

        assert response.status_code == 409
        assert "fee-management" in response.json()["detail"]

    async def test_cannot_enable_without_feature(
        self, client: AsyncClient, superadmin_token: str
    ):
        response = await client.post(
            "/api/v1/modules/communication/enable",
            headers=auth_header(superadmin_token),
        )
        assert response.status_code == 409

    async def test_unknown_module(self, client: AsyncClient, superadmin_token: str):
        response = await client.post(
            "/api/v1/modules/payroll/enable",
            headers=auth_header(superadmin_token),
        )
        assert response.status_code == 404

    async def test_disabled_module_routes_answer_404(
        self, client: AsyncClient, superadmin_token: str, admin_token: str
    ):
        """Test fee routes disappear once fee-management and its dependents are off."""
        for name in ("portals", "reporting", "fee-management"):
            response = await client.post(
                f"/api/v1/modules/{name}/disable",
                headers=auth_header(superadmin_token),
            )
            assert response.status_code == 200

        response = await client.get("/api/v1/payments", headers=auth_header(admin_token))
        assert response.status_code == 404

        response = await client.get("/api/v1/students", headers=auth_header(admin_token))
        assert response.status_code == 200
