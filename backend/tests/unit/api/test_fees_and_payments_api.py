"""
API Tests for exam fees and Razorpay payments
"""
import hashlib
import hmac
import json
from datetime import datetime

import pytest
from httpx import AsyncClient
from sqlalchemy import select

from app.core.config import settings
from app.models import (
    Batch, PaymentStatus, Semester, Student, StudentBatch, StudentBatchExamFee, UserRole,
)
from conftest import auth_headers


def _signature(order_id: str, payment_id: str) -> str:
    message = f"{order_id}|{payment_id}".encode()
    return hmac.new(settings.RAZORPAY_KEY_SECRET.encode(), message, hashlib.sha256).hexdigest()


@pytest.fixture
async def batch(db_session, college):
    semester = Semester(number=1)
    db_session.add(semester)
    await db_session.flush()
    batch = Batch(name="CE 2021-24 Sem 1", college_id=college.id, semester_id=semester.id)
    db_session.add(batch)
    await db_session.commit()
    return batch


@pytest.fixture
async def student_batch(db_session, student_user, batch):
    student = (await db_session.execute(select(Student).where(Student.user_id == student_user.id))).scalar_one()
    enrollment = StudentBatch(student_id=student.id, batch_id=batch.id)
    db_session.add(enrollment)
    await db_session.commit()
    return enrollment


@pytest.fixture
async def fees(db_session, student_batch):
    rows = [
        StudentBatchExamFee(student_batch_id=student_batch.id, reason="Semester exam fee",
                            exam_fee=1500.0, due_date=datetime(2024, 12, 31)),
        StudentBatchExamFee(student_batch_id=student_batch.id, reason="Practical exam fee",
                            exam_fee=250.5, due_date=datetime(2024, 12, 15)),
    ]
    db_session.add_all(rows)
    await db_session.commit()
    return rows


async def _create_order(client: AsyncClient, user, fee_ids, amount):
    return await client.post(
        "/api/razorpay/create-order",
        json={"studentBatchExamFeeIds": fee_ids, "amount": amount},
        headers=auth_headers(user),
    )


class TestExamFees:

    @pytest.mark.asyncio
    async def test_finance_manager_creates_fee(self, client: AsyncClient, finance_manager, student_batch):
        response = await client.post(
            "/api/studentBatchExamFee",
            json={
                "studentBatchId": student_batch.id,
                "reason": "Back paper fee",
                "examFee": 500,
                "dueDate": "2024-11-30T00:00:00",
            },
            headers=auth_headers(finance_manager),
        )

        assert response.status_code == 201
        assert response.json()["paymentStatus"] == "PENDING"
        assert response.json()["examFee"] == 500

    @pytest.mark.asyncio
    async def test_duplicate_reason(self, client: AsyncClient, finance_manager, student_batch, fees):
        response = await client.post(
            "/api/studentBatchExamFee",
            json={
                "studentBatchId": student_batch.id,
                "reason": "Semester exam fee",
                "examFee": 1500,
                "dueDate": "2024-12-31T00:00:00",
            },
            headers=auth_headers(finance_manager),
        )

        assert response.status_code == 409
        assert response.json()["message"] == "A record with the same reason already exists for this StudentBatch"

    @pytest.mark.asyncio
    async def test_unknown_student_batch(self, client: AsyncClient, finance_manager):
        response = await client.post(
            "/api/studentBatchExamFee",
            json={
                "studentBatchId": "00000000-0000-4000-8000-000000000000",
                "reason": "Exam fee",
                "examFee": 100,
                "dueDate": "2024-12-31T00:00:00",
            },
            headers=auth_headers(finance_manager),
        )

        assert response.status_code == 404
        assert response.json()["message"] == "StudentBatch not found"

    @pytest.mark.asyncio
    async def test_non_positive_fee_rejected(self, client: AsyncClient, finance_manager, student_batch):
        response = await client.post(
            "/api/studentBatchExamFee",
            json={
                "studentBatchId": student_batch.id,
                "reason": "Free exam",
                "examFee": 0,
                "dueDate": "2024-12-31T00:00:00",
            },
            headers=auth_headers(finance_manager),
        )

        assert response.status_code == 422

    @pytest.mark.asyncio
    @pytest.mark.parametrize("reason", ["   ", "\t\n"])
    async def test_blank_reason_rejected(self, client: AsyncClient, finance_manager, student_batch, reason):
        response = await client.post(
            "/api/studentBatchExamFee",
            json={
                "studentBatchId": student_batch.id,
                "reason": reason,
                "examFee": 500,
                "dueDate": "2024-12-31T00:00:00",
            },
            headers=auth_headers(finance_manager),
        )

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_padded_reason_matches_existing(self, client: AsyncClient, finance_manager, student_batch, fees):
        response = await client.post(
            "/api/studentBatchExamFee",
            json={
                "studentBatchId": student_batch.id,
                "reason": "  Semester exam fee  ",
                "examFee": 1500,
                "dueDate": "2024-12-31T00:00:00",
            },
            headers=auth_headers(finance_manager),
        )

        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_list_by_batch(self, client: AsyncClient, college_admin, batch, fees):
        response = await client.get(
            "/api/studentBatchExamFee", params={"batchId": batch.id}, headers=auth_headers(college_admin)
        )

        assert response.status_code == 200
        data = response.json()
        assert [f["reason"] for f in data] == ["Practical exam fee", "Semester exam fee"]
        assert data[0]["batchName"] == "CE 2021-24 Sem 1"

    @pytest.mark.asyncio
    async def test_list_unknown_batch(self, client: AsyncClient, college_admin):
        response = await client.get(
            "/api/studentBatchExamFee",
            params={"batchId": "00000000-0000-4000-8000-000000000000"},
            headers=auth_headers(college_admin),
        )

        assert response.status_code == 404
        assert response.json()["message"] == "Batch not found"

    @pytest.mark.asyncio
    async def test_list_empty(self, client: AsyncClient, college_admin, batch):
        response = await client.get(
            "/api/studentBatchExamFee", params={"batchId": batch.id}, headers=auth_headers(college_admin)
        )

        assert response.status_code == 404
        assert response.json()["message"] == "No records found"

    @pytest.mark.asyncio
    async def test_student_sees_own_fees(self, client: AsyncClient, student_user, fees):
        response = await client.get("/api/studentBatchExamFee/mine", headers=auth_headers(student_user))

        assert response.status_code == 200
        assert len(response.json()) == 2

    @pytest.mark.asyncio
    async def test_student_cannot_create_fees(self, client: AsyncClient, student_user, student_batch):
        response = await client.post(
            "/api/studentBatchExamFee",
            json={
                "studentBatchId": student_batch.id,
                "reason": "Waiver",
                "examFee": 1,
                "dueDate": "2024-12-31T00:00:00",
            },
            headers=auth_headers(student_user),
        )

        assert response.status_code == 403


class TestCreateOrder:

    @pytest.mark.asyncio
    async def test_create_order(self, client: AsyncClient, student_user, fees, gateway):
        response = await _create_order(client, student_user, [f.id for f in fees], 1750.5)

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["orderId"] == "order_test1"
        assert data["amount"] == 175050
        assert data["currency"] == "INR"
        assert data["keyId"] == "rzp_test_key"
        assert gateway.orders[0]["amount"] == 175050

    @pytest.mark.asyncio
    async def test_amount_mismatch(self, client: AsyncClient, student_user, fees, gateway):
        response = await _create_order(client, student_user, [f.id for f in fees], 1000)

        assert response.status_code == 400
        assert response.json()["message"] == "Amount mismatch"
        assert "1750.5" in response.json()["details"]["reason"]
        assert gateway.orders == []

    @pytest.mark.asyncio
    async def test_unknown_fee(self, client: AsyncClient, student_user, fees):
        response = await _create_order(client, student_user, ["00000000-0000-4000-8000-000000000000"], 10)

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_other_students_fee_hidden(self, client: AsyncClient, db_session, make_user, college, fees):
        other = await make_user(UserRole.STUDENT, college_id=college.id)
        db_session.add(Student(name=other.name, enrollment_no="E21CE01002", college_id=college.id, user_id=other.id))
        await db_session.commit()

        response = await _create_order(client, other, [fees[0].id], 1500)

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_only_students_pay(self, client: AsyncClient, finance_manager, fees):
        response = await _create_order(client, finance_manager, [fees[0].id], 1500)

        assert response.status_code == 403


class TestVerifyPayment:

    @pytest.mark.asyncio
    async def test_valid_signature_completes_fees(self, client: AsyncClient, student_user, fees):
        order = (await _create_order(client, student_user, [fees[0].id], 1500)).json()

        response = await client.put(
            "/api/razorpay/verify-payment",
            json={
                "razorpayOrderId": order["orderId"],
                "razorpayPaymentId": "pay_1",
                "razorpaySignature": _signature(order["orderId"], "pay_1"),
            },
            headers=auth_headers(student_user),
        )

        assert response.status_code == 200
        assert response.json()["status"] == "COMPLETED"
        assert response.json()["razorpayPaymentId"] == "pay_1"
        assert fees[0].payment_status == PaymentStatus.COMPLETED
        assert fees[1].payment_status == PaymentStatus.PENDING

    @pytest.mark.asyncio
    async def test_paid_fee_cannot_be_ordered_again(self, client: AsyncClient, student_user, fees):
        order = (await _create_order(client, student_user, [fees[0].id], 1500)).json()
        await client.put(
            "/api/razorpay/verify-payment",
            json={
                "razorpayOrderId": order["orderId"],
                "razorpayPaymentId": "pay_1",
                "razorpaySignature": _signature(order["orderId"], "pay_1"),
            },
            headers=auth_headers(student_user),
        )

        response = await _create_order(client, student_user, [f.id for f in fees], 1750.5)

        assert response.status_code == 400
        assert response.json()["message"] == "Some fees have already been paid."
        assert response.json()["details"]["completedIds"] == [fees[0].id]

    @pytest.mark.asyncio
    async def test_bad_signature_fails_payment(self, client: AsyncClient, student_user, fees):
        order = (await _create_order(client, student_user, [fees[0].id], 1500)).json()

        response = await client.put(
            "/api/razorpay/verify-payment",
            json={
                "razorpayOrderId": order["orderId"],
                "razorpayPaymentId": "pay_1",
                "razorpaySignature": _signature(order["orderId"], "pay_2"),
            },
            headers=auth_headers(student_user),
        )

        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_SIGNATURE"
        assert fees[0].payment_status == PaymentStatus.PENDING

    @pytest.mark.asyncio
    async def test_unknown_order(self, client: AsyncClient, student_user):
        response = await client.put(
            "/api/razorpay/verify-payment",
            json={"razorpayOrderId": "order_x", "razorpayPaymentId": "pay_1", "razorpaySignature": "sig"},
            headers=auth_headers(student_user),
        )

        assert response.status_code == 404


class TestWebhook:

    @staticmethod
    def _signed(payload: dict):
        body = json.dumps(payload).encode()
        signature = hmac.new(settings.RAZORPAY_WEBHOOK_SECRET.encode(), body, hashlib.sha256).hexdigest()
        return body, {"X-Razorpay-Signature": signature, "Content-Type": "application/json"}

    @pytest.mark.asyncio
    async def test_captured_event_completes_payment(self, client: AsyncClient, student_user, fees):
        order = (await _create_order(client, student_user, [fees[1].id], 250.5)).json()
        body, headers = self._signed({
            "event": "payment.captured",
            "payload": {"payment": {"entity": {"id": "pay_hook", "order_id": order["orderId"]}}},
        })

        response = await client.post("/api/razorpay/webhook", content=body, headers=headers)

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}
        assert fees[1].payment_status == PaymentStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_invalid_signature(self, client: AsyncClient):
        response = await client.post(
            "/api/razorpay/webhook",
            content=b'{"event": "payment.captured"}',
            headers={"X-Razorpay-Signature": "forged"},
        )

        assert response.status_code == 401


class TestPrefill:

    @pytest.mark.asyncio
    async def test_prefill(self, client: AsyncClient, student_user):
        response = await client.get("/api/razorpay/studentPrefillData", headers=auth_headers(student_user))

        assert response.status_code == 200
        assert response.json() == {
            "name": student_user.name,
            "email": student_user.email,
            "contact": "9000000001",
        }
