# salesdesk/models/enums/discount_type.py
import enum


class DiscountType(str, enum.Enum):
    amount = "amount"
    percentage = "percentage"
