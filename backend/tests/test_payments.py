"""Tests for cost splitting and Venmo links."""
from family_dinner.utils.payments import generate_venmo_url, per_person_cost


class TestPayments:
    def test_per_person_cost(self):
        assert per_person_cost(100.0, 3) == 33.33
        assert per_person_cost(80.0, 4) == 20.0
        assert per_person_cost(50.0, 0) == 0.0

    def test_venmo_url(self):
        url = generate_venmo_url("chef-sam", 25, "Family Dinner: Pho & Friends")
        assert url == (
            "https://venmo.com/chef-sam?txn=pay&amount=25.00"
            "&note=Family%20Dinner%3A%20Pho%20%26%20Friends"
        )
