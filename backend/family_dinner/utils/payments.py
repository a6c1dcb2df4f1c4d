"""Cost splitting and Venmo pay links. Formatting only; no money moves here."""
from urllib.parse import quote


def per_person_cost(total_cost: float, attendee_count: int) -> float:
    if attendee_count <= 0:
        return 0.0
    return round(total_cost / attendee_count, 2)


def generate_venmo_url(username: str, amount: float, note: str) -> str:
    """Build a Venmo "pay" link for ``username`` pre-filled with amount and note."""
    return f"https://venmo.com/{quote(username)}?txn=pay&amount={amount:.2f}&note={quote(note, safe='')}"
