from datetime import date, datetime

from fastapi import HTTPException, status


def parse_iso(value: str) -> datetime:
    # a "+" in an unencoded query string arrives as a space
    value = value.strip().replace(" ", "+", 1) if "T" in value else value.strip()
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)


def parse_day(value: str) -> date:
    try:
        if "T" not in value and len(value.strip()) == 10:
            return date.fromisoformat(value.strip())
        return parse_iso(value).date()
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Invalid date: {value!r}")
