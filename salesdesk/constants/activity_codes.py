# salesdesk/constants/activity_codes.py

from enum import Enum


class ActivityCode(str, Enum):
    CREATE_QUOTATION = "CREATE_QUOTATION"
    UPDATE_QUOTATION = "UPDATE_QUOTATION"
    UPDATE_QUOTATION_DISCOUNT = "UPDATE_QUOTATION_DISCOUNT"
    TRANSITION_QUOTATION = "TRANSITION_QUOTATION"
    DELETE_QUOTATION = "DELETE_QUOTATION"
    CREATE_INVOICE = "CREATE_INVOICE"
