"""
API Tests for the grade card pipeline: internal marks, external scaling,
grade generation and the PDF download
"""
import pytest
from httpx import AsyncClient

from app.models import UserRole
from conftest import auth_headers


class Pipeline:
    """Sets up a one-semester batch with a theory and a practical subject through the API"""

    def __init__(self, client: AsyncClient, admin):
        self.client = client
        self.headers = auth_headers(admin)
        self.students = {}
        self.batch_subjects = {}

    async def post(self, path, payload, expected=201):
        response = await self.client.post(f"/api/academics/{path}", json=payload, headers=self.headers)
        assert response.status_code == expected, response.text
        return response.json()

    async def build(self, user_id=None):
        semester = await self.post("semesters", {"number": 1})
        batch = await self.post("batches", {"name": "CE 2021-24 Sem 1", "semesterId": semester["id"]})
        self.batch_id = batch["id"]

        for code, name, credit, class_type in (
            ("CE101", "Surveying", 4, "THEORY"),
            ("CE102", "Surveying Lab", 2, "PRACTICAL"),
        ):
            subject = await self.post("subjects", {"name": name, "code": code, "credit": credit})
            batch_subject = await self.post("batch-subjects", {
                "batchId": self.batch_id, "subjectId": subject["id"], "classType": class_type,
            })
            self.batch_subjects[code] = batch_subject["id"]

        for enrollment_no, name, linked in (
            ("E21CE01005", "Ravi Kumar", user_id),
            ("E21CE01006", "Anjali Singh", None),
        ):
            payload = {"name": name, "enrollmentNo": enrollment_no, "batchId": self.batch_id}
            if linked:
                payload["userId"] = linked
            self.students[enrollment_no] = (await self.post("students", payload))["id"]

        exam_type = await self.post("exam-types", {"name": "End Semester Exam", "fullMarks": 80})
        self.exam_type_id = exam_type["id"]
        return self

    async def record_exam(self, code, achieved):
        await self.post("exam-marks", {
            "batchSubjectId": self.batch_subjects[code],
            "examTypeId": self.exam_type_id,
            "marks": [
                {"studentId": self.students[enrollment_no], "achievedMarks": marks}
                for enrollment_no, marks in achieved.items()
            ],
        }, expected=200)

    async def import_internal(self, code, internal):
        return await self.client.post(
            "/api/gradeCard/importInternal",
            json={
                "batchSubjectId": self.batch_subjects[code],
                "marks": [{"enrollmentNo": e, "internalMarks": m} for e, m in internal.items()],
            },
            headers=self.headers,
        )

    async def run(self, step):
        return await self.client.post(f"/api/gradeCard/{step}", json={"batchId": self.batch_id}, headers=self.headers)

    async def complete(self):
        await self.import_internal("CE101", {"E21CE01005": 25, "E21CE01006": 10})
        await self.import_internal("CE102", {"E21CE01005": 20, "E21CE01006": 28})
        await self.record_exam("CE101", {"E21CE01005": 64, "E21CE01006": 30})
        await self.record_exam("CE102", {"E21CE01005": 40, "E21CE01006": 72})
        assert (await self.run("calculateExternal")).status_code == 200
        assert (await self.run("generateGradeDetails")).status_code == 200


@pytest.fixture
async def pipeline(client: AsyncClient, college_admin):
    return await Pipeline(client, college_admin).build()


class TestImportInternal:

    @pytest.mark.asyncio
    async def test_import_creates_cards(self, client: AsyncClient, pipeline, college_admin):
        response = await pipeline.import_internal("CE101", {"E21CE01005": 25, "E21CE01006": 10})

        assert response.status_code == 201
        assert response.json() == {"message": "Successfully imported 2 records.", "successCount": 2}

        cards = (await client.get(
            "/api/gradeCard", params={"batchId": pipeline.batch_id}, headers=auth_headers(college_admin)
        )).json()
        assert [c["cardNo"] for c in cards] == ["GC21011001", "GC21011002"]
        assert cards[0]["subjectGrades"][0]["internalMarks"] == 25

    @pytest.mark.asyncio
    async def test_unknown_student_rejects_whole_import(self, client: AsyncClient, pipeline, college_admin):
        response = await pipeline.import_internal("CE101", {"E21CE01005": 25, "E21XX99999": 12})

        assert response.status_code == 400
        assert response.json()["errors"] == ["Student not found in the system: E21XX99999"]

        cards = (await client.get(
            "/api/gradeCard", params={"batchId": pipeline.batch_id}, headers=auth_headers(college_admin)
        )).json()
        assert cards == []

    @pytest.mark.asyncio
    async def test_second_import_for_same_subject(self, pipeline):
        await pipeline.import_internal("CE101", {"E21CE01005": 25})

        response = await pipeline.import_internal("CE101", {"E21CE01005": 27})

        assert response.status_code == 400
        assert response.json()["errors"] == ["Internal marks already exist for student E21CE01005."]

    @pytest.mark.asyncio
    async def test_internal_marks_capped_at_thirty(self, pipeline):
        response = await pipeline.import_internal("CE101", {"E21CE01005": 31})

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_unknown_batch_subject(self, client: AsyncClient, college_admin):
        response = await client.post(
            "/api/gradeCard/importInternal",
            json={
                "batchSubjectId": "00000000-0000-4000-8000-000000000000",
                "marks": [{"enrollmentNo": "E21CE01005", "internalMarks": 20}],
            },
            headers=auth_headers(college_admin),
        )

        assert response.status_code == 404
        assert response.json()["message"] == "Invalid batch subject ID."


class TestCalculateExternal:

    @pytest.mark.asyncio
    async def test_missing_exam_marks_reported_per_subject(self, pipeline):
        await pipeline.import_internal("CE101", {"E21CE01005": 25, "E21CE01006": 10})
        await pipeline.record_exam("CE101", {"E21CE01005": 64, "E21CE01006": 30})

        response = await pipeline.run("calculateExternal")

        assert response.status_code == 400
        assert response.json()["errors"] == [
            "No End Semester Exam marks found for subject Surveying Lab-CE102",
        ]

    @pytest.mark.asyncio
    async def test_enrolled_student_without_exam_mark(self, client: AsyncClient, pipeline, college_admin):
        await pipeline.import_internal("CE101", {"E21CE01005": 25, "E21CE01006": 10})
        await pipeline.import_internal("CE102", {"E21CE01005": 20, "E21CE01006": 28})
        await pipeline.record_exam("CE101", {"E21CE01005": 64, "E21CE01006": 30})
        await pipeline.record_exam("CE102", {"E21CE01005": 40})

        response = await pipeline.run("calculateExternal")

        assert response.status_code == 400
        assert response.json()["errors"] == [
            "Missing End Semester Exam marks for student Anjali Singh-E21CE01006 in subject Surveying Lab-CE102",
        ]

        cards = (await client.get(
            "/api/gradeCard", params={"batchId": pipeline.batch_id}, headers=auth_headers(college_admin)
        )).json()
        assert all(g["externalMarks"] is None for c in cards for g in c["subjectGrades"])

    @pytest.mark.asyncio
    async def test_missing_internal_marks(self, pipeline):
        await pipeline.import_internal("CE101", {"E21CE01005": 25, "E21CE01006": 10})
        await pipeline.import_internal("CE102", {"E21CE01005": 20})
        await pipeline.record_exam("CE101", {"E21CE01005": 64, "E21CE01006": 30})
        await pipeline.record_exam("CE102", {"E21CE01005": 40, "E21CE01006": 72})

        response = await pipeline.run("calculateExternal")

        assert response.status_code == 400
        assert response.json()["errors"] == [
            "Internal marks missing for student Anjali Singh-E21CE01006 in subject Surveying Lab-CE102",
        ]

    @pytest.mark.asyncio
    async def test_scales_to_seventy(self, client: AsyncClient, pipeline, college_admin):
        await pipeline.import_internal("CE101", {"E21CE01005": 25, "E21CE01006": 10})
        await pipeline.import_internal("CE102", {"E21CE01005": 20, "E21CE01006": 28})
        await pipeline.record_exam("CE101", {"E21CE01005": 64, "E21CE01006": 30})
        await pipeline.record_exam("CE102", {"E21CE01005": 40, "E21CE01006": 72})

        response = await pipeline.run("calculateExternal")

        assert response.status_code == 200
        assert response.json()["message"] == "External marks updated successfully."

        cards = (await client.get(
            "/api/gradeCard", params={"batchId": pipeline.batch_id}, headers=auth_headers(college_admin)
        )).json()
        by_subject = {
            g["batchSubjectId"]: g["externalMarks"] for g in cards[1]["subjectGrades"]
        }
        assert by_subject == {pipeline.batch_subjects["CE101"]: 26, pipeline.batch_subjects["CE102"]: 63}

    @pytest.mark.asyncio
    async def test_teacher_cannot_calculate(self, client: AsyncClient, make_user, college, pipeline):
        teacher = await make_user(UserRole.TEACHER, college_id=college.id)

        response = await client.post(
            "/api/gradeCard/calculateExternal", json={"batchId": pipeline.batch_id}, headers=auth_headers(teacher)
        )

        assert response.status_code == 403


class TestGenerateGradeDetails:

    @pytest.mark.asyncio
    async def test_no_cards(self, pipeline):
        response = await pipeline.run("generateGradeDetails")

        assert response.status_code == 404
        assert response.json()["message"] == "No student grade cards found for this batch."

    @pytest.mark.asyncio
    async def test_external_marks_required(self, pipeline):
        await pipeline.import_internal("CE101", {"E21CE01005": 25})

        response = await pipeline.run("generateGradeDetails")

        assert response.status_code == 400
        assert response.json()["errors"] == [
            "Missing internal or external marks for student Ravi Kumar-E21CE01005 in subject Surveying-CE101",
        ]

    @pytest.mark.asyncio
    async def test_full_pipeline(self, client: AsyncClient, pipeline, college_admin):
        await pipeline.complete()

        cards = (await client.get(
            "/api/gradeCard", params={"batchId": pipeline.batch_id}, headers=auth_headers(college_admin)
        )).json()

        ravi, anjali = cards
        assert ravi["gpa"] == 8.0
        assert ravi["cgpa"] == 8.0
        assert ravi["totalGradedCredit"] == 6
        assert ravi["totalQualityPoint"] == 48
        assert sorted(g["grade"] for g in ravi["subjectGrades"]) == ["A", "D"]

        assert anjali["gpa"] == 3.33
        assert sorted(g["grade"] for g in anjali["subjectGrades"]) == ["F", "S"]


class TestGradeCardAccess:

    @pytest.mark.asyncio
    async def test_student_sees_only_own_card(self, client: AsyncClient, make_user, college, college_admin):
        account = await make_user(UserRole.STUDENT, college_id=college.id)
        pipeline = await Pipeline(client, college_admin).build(user_id=account.id)
        await pipeline.complete()

        response = await client.get("/api/gradeCard", headers=auth_headers(account))

        assert response.status_code == 200
        cards = response.json()
        assert len(cards) == 1
        assert cards[0]["studentId"] == pipeline.students["E21CE01005"]

        all_cards = (await client.get(
            "/api/gradeCard", params={"batchId": pipeline.batch_id}, headers=auth_headers(college_admin)
        )).json()
        other_id = next(c["id"] for c in all_cards if c["studentId"] == pipeline.students["E21CE01006"])
        response = await client.get(f"/api/gradeCard/{other_id}", headers=auth_headers(account))
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_other_college_admin_cannot_read(self, client: AsyncClient, make_user, other_college, pipeline):
        await pipeline.import_internal("CE101", {"E21CE01005": 25})
        card_id = (await client.get(
            "/api/gradeCard", params={"batchId": pipeline.batch_id}, headers=pipeline.headers
        )).json()[0]["id"]
        outsider = await make_user(UserRole.COLLEGE_SUPER_ADMIN, college_id=other_college.id)

        response = await client.get(f"/api/gradeCard/{card_id}", headers=auth_headers(outsider))

        assert response.status_code == 404


class TestGradeCardPdf:

    @pytest.mark.asyncio
    async def test_pdf_requires_generated_grades(self, client: AsyncClient, pipeline):
        await pipeline.import_internal("CE101", {"E21CE01005": 25})
        card_id = (await client.get(
            "/api/gradeCard", params={"batchId": pipeline.batch_id}, headers=pipeline.headers
        )).json()[0]["id"]

        response = await client.get(f"/api/gradeCard/{card_id}/pdf", headers=pipeline.headers)

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_pdf_download(self, client: AsyncClient, pipeline):
        await pipeline.complete()
        card_id = (await client.get(
            "/api/gradeCard", params={"batchId": pipeline.batch_id}, headers=pipeline.headers
        )).json()[0]["id"]

        response = await client.get(f"/api/gradeCard/{card_id}/pdf", headers=pipeline.headers)

        assert response.status_code == 200
        assert response.headers["content-type"] == "application/pdf"
        assert "GradeCard_E21CE01005_Sem1.pdf" in response.headers["content-disposition"]
        assert response.content.startswith(b"%PDF")
