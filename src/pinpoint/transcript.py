from pinpoint.draft import ConversationEntry


def _role(entry) -> str:
    return entry.role if isinstance(entry, ConversationEntry) else entry.get("role", "")


def _message(entry) -> str:
    return entry.message if isinstance(entry, ConversationEntry) else entry.get("message", "")


def joined_text(conversation: list, role: str | None = None) -> str:
    """Concatenate turn messages, optionally only one role's, in spoken order.

    Turns are joined with " . " so a pattern never spans the boundary
    between two utterances.
    """
    messages = [
        _message(e) for e in conversation
        if _message(e) and (role is None or _role(e) == role)
    ]
    return " . ".join(m.strip() for m in messages)


def to_plain_text(conversation: list) -> str:
    """Convert conversation entries to plain text.

    Agent lines prefixed with "Agent:", customer-side lines with "Customer:".
    """
    if not conversation:
        return ""

    lines = []
    for entry in conversation:
        role = _role(entry)
        if role == "agent":
            lines.append(f"Agent: {_message(entry)}")
        elif role == "user":
            lines.append(f"Customer: {_message(entry)}")
    return "\n".join(lines)


def to_json_array(conversation: list) -> list[dict]:
    """Convert conversation entries to a {role, message, timestamp} list."""
    if not conversation:
        return []

    result = []
    for entry in conversation:
        if isinstance(entry, ConversationEntry):
            result.append({
                "role": entry.role,
                "message": entry.message,
                "timestamp": entry.timestamp,
            })
        elif entry.get("role") in ("agent", "user"):
            result.append({
                "role": entry["role"],
                "message": entry.get("message", ""),
                "timestamp": entry.get("timestamp", 0.0),
            })
    return result
