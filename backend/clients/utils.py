from datetime import timedelta


def add_business_days(start, days):
    """
    Move ``start`` forward by ``days`` weekdays, skipping Saturday and Sunday.

    The time of day is preserved, so a deadline set at 14:00 on Friday with
    three business days lands on Wednesday at 14:00.
    """
    current = start
    remaining = days
    while remaining > 0:
        current += timedelta(days=1)
        if current.weekday() < 5:
            remaining -= 1
    return current


def full_name(first_name, last_name):
    return f"{first_name} {last_name}".strip()
