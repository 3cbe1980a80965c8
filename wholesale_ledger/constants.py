APP_NAME = "Wholesale Ledger"

DATA_DIR = "data"
DB_FILE_NAME = "ledger.db"

TABLE_SCHEMA_VERSION = "schema_version"
SCHEMA_VERSION = "1.0.0"

# Ledger ids continue from here; deleted ids are never reused.
LEDGER_ID_START = 9999

MONEY_PLACES = 2
QTY_PLACES = 6

SMS_API_URL = "https://bulksmsbd.net/api/smsapi"

SMS_TEMPLATE_NEW_LEDGER = (
    "{business_name}: Dear {employee_name}, a new {amount_type} of {new_amount} "
    "was added from Ledger #{ledger_no} on {date}. Your total due is now {total_due}."
)
SMS_TEMPLATE_EDIT_LEDGER = (
    "Dear {employee_name}, Ledger #{ledger_no} has been updated. Your {amount_type} "
    "has changed from {old_amount} to {new_amount}. -{business_name}"
)
