# shop/views.py
import logging

from django.http import JsonResponse

from cardify.utils.http import json_error, require_json_methods
from .inventory import InventoryUnavailable, load_inventory
from .pricing import ALLOWED_SHIPPING_COUNTRIES, shipping_option_for_country

logger = logging.getLogger(__name__)


@require_json_methods(["GET"])
def inventory(request):
    try:
        data = load_inventory()
    except InventoryUnavailable as exc:
        logger.error("Inventory unavailable: %s", exc)
        return json_error("Inventory is currently unavailable", "INVENTORY_UNAVAILABLE", status=503)
    resp = JsonResponse({"success": True, "data": data})
    resp["Cache-Control"] = "no-store"
    return resp


@require_json_methods(["GET"])
def shipping_quote(request, country):
    country = country.upper()
    if country not in ALLOWED_SHIPPING_COUNTRIES:
        return json_error("We don't ship to that country yet", "UNSUPPORTED_COUNTRY")
    opt = shipping_option_for_country(country)
    return JsonResponse({
        "country": country,
        "name": opt.name,
        "amountCents": opt.amount_cents,
        "minDays": opt.min_days,
        "maxDays": opt.max_days,
    })
