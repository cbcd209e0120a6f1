from urllib.parse import urlparse

from storefront.config import SUPABASE_URL
import storefront.infra.supabase_client as supabase_client
from storefront.payments import is_configured as stripe_configured

CHECKOUT_TABLES = ["products", "customers", "orders", "order_products"]

def _check_table(client, name: str):
    try:
        res = client.table(name).select("*").limit(1).execute()
        return {"ok": True, "rows": len(res.data or [])}
    except Exception as e:
        return {"ok": False, "error": str(e)}

def health_supabase_info():
    parsed = urlparse(SUPABASE_URL) if SUPABASE_URL else None
    info = {
        "supabase_url": SUPABASE_URL,
        "hostname": parsed.hostname if parsed else None,
        "connect_ok": False,
        "error": None,
        "tables": {},
        "stripe_configured": stripe_configured(),
    }
    try:
        client = supabase_client.get_service_supabase()
        for t in CHECKOUT_TABLES:
            info["tables"][t] = _check_table(client, t)
        info["connect_ok"] = all(t["ok"] for t in info["tables"].values())
    except Exception as e:
        info["error"] = str(e)
    return info
