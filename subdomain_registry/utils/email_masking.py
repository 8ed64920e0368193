"""Email masking utility for caller identities written to logs."""


def mask_email(email: str | None) -> str:
    """
    Mask an email address before it reaches a log line.

    Examples:
        alice@example.com   → a***@example.com
        a@example.com       → ***@example.com
        None                → -

    Args:
        email: Caller email address from the bearer token

    Returns:
        Masked email address
    """
    if not email:
        return "-"

    if "@" not in email:
        return "***"

    local, domain = email.split("@", 1)

    if len(local) > 1:
        masked_local = local[0] + "***"
    else:
        masked_local = "***"

    return f"{masked_local}@{domain}"
