"""
API Tests for colleges and departments
"""
import pytest
from httpx import AsyncClient

from app.models import Department, UserRole
from conftest import auth_headers

COLLEGE_PAYLOAD = {
    "name": "Government Polytechnic Muzaffarpur",
    "address": "Muzaffarpur, Bihar",
    "contactEmail": "principal@gpmuz.ac.in",
    "contactPhone": "0621224455",
    "establishedOn": "1955-07-01",
}


class TestColleges:

    @pytest.mark.asyncio
    async def test_sbte_admin_creates_college(self, client: AsyncClient, sbte_admin):
        response = await client.post("/api/college", json=COLLEGE_PAYLOAD, headers=auth_headers(sbte_admin))

        assert response.status_code == 201
        data = response.json()
        assert data["name"] == COLLEGE_PAYLOAD["name"]
        assert data["establishedOn"] == "1955-07-01"
        assert data["id"]

    @pytest.mark.asyncio
    async def test_college_admin_cannot_create_college(self, client: AsyncClient, college_admin):
        response = await client.post("/api/college", json=COLLEGE_PAYLOAD, headers=auth_headers(college_admin))

        assert response.status_code == 403
        assert response.json() == {"message": "Forbidden"}

    @pytest.mark.asyncio
    async def test_blank_name_rejected(self, client: AsyncClient, sbte_admin):
        payload = {**COLLEGE_PAYLOAD, "name": "   "}

        response = await client.post("/api/college", json=payload, headers=auth_headers(sbte_admin))

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_any_user_lists_colleges(self, client: AsyncClient, college, other_college, student_user):
        response = await client.get("/api/college", headers=auth_headers(student_user))

        assert response.status_code == 200
        names = [c["name"] for c in response.json()]
        assert names == sorted(names)
        assert len(names) == 2


class TestDepartments:

    @pytest.mark.asyncio
    async def test_college_admin_creates_department(self, client: AsyncClient, college_admin, college):
        response = await client.post(
            "/api/department",
            json={"name": "Mechanical Engineering", "collegeId": college.id},
            headers=auth_headers(college_admin),
        )

        assert response.status_code == 201
        assert response.json()["isActive"] is True
        assert response.json()["collegeId"] == college.id

    @pytest.mark.asyncio
    async def test_college_admin_cannot_touch_other_college(self, client: AsyncClient, college_admin, other_college):
        response = await client.post(
            "/api/department",
            json={"name": "Mechanical Engineering", "collegeId": other_college.id},
            headers=auth_headers(college_admin),
        )

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_unknown_college(self, client: AsyncClient, sbte_admin):
        response = await client.post(
            "/api/department",
            json={"name": "Mechanical Engineering", "collegeId": "00000000-0000-4000-8000-000000000000"},
            headers=auth_headers(sbte_admin),
        )

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_duplicate_name_conflicts(self, client: AsyncClient, sbte_admin, department):
        headers = auth_headers(sbte_admin)
        body = {"name": department.name, "collegeId": department.college_id}

        response = await client.post("/api/department", json=body, headers=headers)

        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_college_admin_sees_only_active(self, client: AsyncClient, db_session, college_admin, college, department):
        db_session.add(Department(name="Closed Department", college_id=college.id, is_active=False))
        await db_session.commit()

        response = await client.get(f"/api/department/{college.id}", headers=auth_headers(college_admin))

        assert response.status_code == 200
        assert [d["name"] for d in response.json()] == ["Civil Engineering"]

    @pytest.mark.asyncio
    async def test_sbte_admin_sees_inactive_too(self, client: AsyncClient, db_session, sbte_admin, college, department):
        db_session.add(Department(name="Closed Department", college_id=college.id, is_active=False))
        await db_session.commit()

        response = await client.get(f"/api/department/{college.id}", headers=auth_headers(sbte_admin))

        assert len(response.json()) == 2

    @pytest.mark.asyncio
    async def test_no_departments(self, client: AsyncClient, sbte_admin, other_college):
        response = await client.get(f"/api/department/{other_college.id}", headers=auth_headers(sbte_admin))

        assert response.status_code == 404
        assert response.json()["message"] == "No departments found for this college."

    @pytest.mark.asyncio
    async def test_hod_cannot_list(self, client: AsyncClient, make_user, college):
        hod = await make_user(UserRole.HOD, college_id=college.id)

        response = await client.get(f"/api/department/{college.id}", headers=auth_headers(hod))

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_update_department(self, client: AsyncClient, college_admin, department):
        response = await client.put(
            "/api/department/specificDepartment",
            json={
                "departmentId": department.id,
                "name": "Civil Engg.",
                "isActive": False,
                "collegeId": department.college_id,
            },
            headers=auth_headers(college_admin),
        )

        assert response.status_code == 200
        assert response.json()["message"] == "Department updated successfully"
        assert response.json()["department"]["name"] == "Civil Engg."
        assert response.json()["department"]["isActive"] is False

    @pytest.mark.asyncio
    async def test_update_requires_all_fields(self, client: AsyncClient, college_admin, department):
        response = await client.put(
            "/api/department/specificDepartment",
            json={"departmentId": department.id, "name": "Civil"},
            headers=auth_headers(college_admin),
        )

        assert response.status_code == 400
        assert response.json()["message"] == "All fields (departmentId, name, isActive, and collegeId) are required."

    @pytest.mark.asyncio
    async def test_update_unknown_department(self, client: AsyncClient, sbte_admin, college):
        response = await client.put(
            "/api/department/specificDepartment",
            json={
                "departmentId": "00000000-0000-4000-8000-000000000000",
                "name": "Civil",
                "isActive": True,
                "collegeId": college.id,
            },
            headers=auth_headers(sbte_admin),
        )

        assert response.status_code == 404
        assert response.json()["message"] == "Department not found"

    @pytest.mark.asyncio
    async def test_toggle_activeness(self, client: AsyncClient, sbte_admin, department):
        response = await client.put(
            "/api/department/updateActiveness",
            json={"departmentId": department.id, "isActive": False},
            headers=auth_headers(sbte_admin),
        )

        assert response.status_code == 200
        assert response.json()["message"] == "Department status updated successfully"
        assert department.is_active is False

    @pytest.mark.asyncio
    async def test_toggle_requires_fields(self, client: AsyncClient, sbte_admin):
        response = await client.put(
            "/api/department/updateActiveness", json={"isActive": False}, headers=auth_headers(sbte_admin)
        )

        assert response.status_code == 400
        assert response.json()["message"] == "All fields (departmentId, and isActive) are required."

    @pytest.mark.asyncio
    async def test_college_admin_cannot_toggle(self, client: AsyncClient, college_admin, department):
        response = await client.put(
            "/api/department/updateActiveness",
            json={"departmentId": department.id, "isActive": False},
            headers=auth_headers(college_admin),
        )

        assert response.status_code == 403
