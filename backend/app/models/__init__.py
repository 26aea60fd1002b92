# Re-export all models for convenient imports
from app.models.user import User, UserRole
from app.models.college import College, Department
from app.models.academic import (
    ClassType, Semester, Batch, Student, StudentBatch, Subject, BatchSubject, ExamType, ExamMark
)
from app.models.notification import Notification, NotifiedCollege
from app.models.load_balancing import LoadBalancingPdf
from app.models.exam_fee import StudentBatchExamFee, Payment, PaymentStatus, payment_exam_fees
from app.models.grade_card import StudentGradeCard, SubjectGradeDetail
from app.models.audit_log import AuditLog, AuditStatus, SecurityEvent, SecuritySeverity
from app.models.alumni import AlumnusProfile
from app.models.attendance import Month, MonthlyBatchSubjectClass, MonthlyBatchSubjectAttendance
from app.models.certificate import Certificate, CertificateType, CertificatePaymentStatus

__all__ = [
    # User
    "User",
    "UserRole",
    # College
    "College",
    "Department",
    # Academics
    "ClassType",
    "Semester",
    "Batch",
    "Student",
    "StudentBatch",
    "Subject",
    "BatchSubject",
    "ExamType",
    "ExamMark",
    # Documents
    "Notification",
    "NotifiedCollege",
    "LoadBalancingPdf",
    # Fees
    "StudentBatchExamFee",
    "Payment",
    "PaymentStatus",
    "payment_exam_fees",
    # Results
    "StudentGradeCard",
    "SubjectGradeDetail",
    # Audit
    "AuditLog",
    "AuditStatus",
    "SecurityEvent",
    "SecuritySeverity",
    # Alumni
    "AlumnusProfile",
    # Attendance
    "Month",
    "MonthlyBatchSubjectClass",
    "MonthlyBatchSubjectAttendance",
    # Certificates
    "Certificate",
    "CertificateType",
    "CertificatePaymentStatus",
]
