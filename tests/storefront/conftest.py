import pytest


@pytest.fixture
def honey(catalogue):
    """Raw honey with bulk tiers and two jar sizes."""
    catalogue.add_product(
        "prod-honey",
        "Raw Honey",
        "KES 1,000",
        pricing_tiers=[
            {"min_quantity": 5, "price": 900},
            {"min_quantity": 10, "price": "KES 800"},
        ],
    )
    catalogue.add_variant("var-honey-500g", "prod-honey", "500g", 550)
    catalogue.add_variant("var-honey-1kg", "prod-honey", "1kg", "1,000.00")
    return catalogue


@pytest.fixture
def eggs(catalogue):
    catalogue.add_product("prod-eggs", "Kienyeji Eggs (tray)", 450.0)
    return catalogue
