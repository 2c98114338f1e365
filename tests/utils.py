from src.user_service.entities.core.user import UserRecord


def make_record(
    login: str = "alice",
    email: str | None = None,
    salesforce_id: str = "001A",
    **fields,
) -> UserRecord:
    """Build a candidate user with sensible defaults."""
    return UserRecord(
        login=login,
        email=email if email is not None else f"{login}@example.com",
        salesforce_id=salesforce_id,
        first_name=fields.pop("first_name", login.title() if login else None),
        last_name=fields.pop("last_name", "Tester"),
        **fields,
    )


def csv_text(*lines: str) -> str:
    return "\n".join(lines) + "\n"


CSV_HEADER = "login,email,firstName,lastName,authorities,salesforceId,parentSalesforceId"
