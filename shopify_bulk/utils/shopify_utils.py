"""
Shared Shopify helpers.
"""

import re

MYSHOPIFY_SUFFIX = ".myshopify.com"


def normalize_shop_domain(shop: str) -> str:
    """
    Normalize a shop identifier into its bare domain.

    Args:
        shop: Store name, myshopify domain or shop URL

    Returns:
        str: Domain used to build the Admin API endpoint

    Examples:
        >>> normalize_shop_domain("my-store")
        'my-store.myshopify.com'
        >>> normalize_shop_domain("https://My-Store.myshopify.com/")
        'my-store.myshopify.com'
        >>> normalize_shop_domain("shop.example.com")
        'shop.example.com'
    """
    if not shop or not shop.strip():
        raise ValueError("Shop is required")

    domain = re.sub(r"^https?://", "", shop.strip(), flags=re.IGNORECASE)
    domain = domain.split("/", 1)[0].lower()
    if not domain:
        raise ValueError("Shop is required")

    # A bare store name is expanded to its myshopify domain
    if "." not in domain:
        domain = f"{domain}{MYSHOPIFY_SUFFIX}"

    return domain
