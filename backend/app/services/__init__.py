from app.services.storage_service import StorageService, storage_service, get_storage
from app.services.email_service import EmailService, email_service
from app.services.payment_service import RazorpayGateway, payment_gateway, get_payment_gateway
from app.services.grade_card_pdf import GradeCardPDFGenerator, grade_card_pdf

__all__ = [
    "StorageService",
    "storage_service",
    "get_storage",
    "EmailService",
    "email_service",
    "RazorpayGateway",
    "payment_gateway",
    "get_payment_gateway",
    "GradeCardPDFGenerator",
    "grade_card_pdf",
]
