# salesdesk/models/enums/review_reason.py
import enum


class ReviewReason(str, enum.Enum):
    initial = "initial"
    reapproval = "reapproval"
