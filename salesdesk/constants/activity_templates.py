from salesdesk.constants.activity_codes import ActivityCode


ACTIVITY_TEMPLATES = {
    # ---------------- QUOTATIONS ----------------
    ActivityCode.CREATE_QUOTATION:
    "{actor_role} ({actor_name}) created quotation {target_name} in {currency}",

    ActivityCode.UPDATE_QUOTATION:
    "{actor_role} ({actor_name}) updated quotation {target_name}: {changes}",

    ActivityCode.UPDATE_QUOTATION_DISCOUNT:
    "{actor_role} ({actor_name}) set discount on {target_name} to {discount} ({discount_type})",

    ActivityCode.TRANSITION_QUOTATION:
    "{actor_role} ({actor_name}) moved quotation {target_name} from {from_status} to {to_status}",

    ActivityCode.DELETE_QUOTATION:
    "{actor_role} ({actor_name}) deleted quotation {target_name}",

    # ---------------- INVOICES ----------------
    ActivityCode.CREATE_INVOICE:
    "{actor_role} ({actor_name}) created invoice {invoice_number} for quotation {target_name}",
}
