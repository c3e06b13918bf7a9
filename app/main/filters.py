# ==============================================================================
# app/main/filters.py
# ------------------------------------------------------------------------------
# Defines custom Jinja2 template filters for the application.
# ==============================================================================

from app.main import bp

@bp.app_template_filter('currency')
def currency_filter(amount):
    """
    Formats an amount in rupees with two decimals.
    Example: 1234.5 -> "₹1,234.50"
    """
    try:
        return "₹{:,.2f}".format(float(amount))
    except (ValueError, TypeError):
        return amount
