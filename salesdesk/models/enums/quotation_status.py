# salesdesk/models/enums/quotation_status.py
import enum


class QuotationStatus(str, enum.Enum):
    draft = "draft"
    accepted = "accepted"
    rejected = "rejected"
    review = "review"
    approved = "approved"
    confirmed = "confirmed"
    booked = "booked"
