"""LLM prompt templates for receipt extraction."""

RECEIPT_EXTRACTION_PROMPT = (
    "Analyze this receipt image and extract the merchant name, total amount, "
    "currency (e.g. USD, EUR, etc.), date of purchase, and a likely category "
    "(e.g. Food, Transport, Shopping). Return the data in valid JSON format."
)

# JSON schema the extraction model must fill in.
RECEIPT_SCHEMA = {
    "type": "object",
    "properties": {
        "merchant": {"type": "string", "description": "Store or business name"},
        "amount": {"type": "string", "description": "Total amount paid, digits only"},
        "currency": {"type": "string", "description": "ISO currency code if visible"},
        "date": {"type": "string", "description": "Date of purchase"},
        "category": {
            "type": "string",
            "description": "Likely expense category; mention Cash if paid in cash",
        },
    },
    "required": ["merchant", "amount", "date"],
}

RECEIPT_TOOL_NAME = "record_receipt"
