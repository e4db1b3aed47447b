# core/supabase_client.py

from typing import Optional

from supabase import create_client, Client
from core.config import settings
from core.logging_config import logger


# ============================================================
# Supabase Client Factory (ALWAYS service role)
# ============================================================

def get_supabase_client() -> Optional[Client]:
    """
    Creates a Supabase client using the SERVICE ROLE KEY.
    REQUIRED for:
        - auth.get_user (bearer credential verification)
        - auth.admin.get_user_by_id (profile lookups)
        - full read/write on every hostel collection
    Returns None when the credentials are not configured.
    """
    try:
        supabase_url = settings.SUPABASE_URL
        supabase_key = settings.SUPABASE_SERVICE_ROLE_KEY  # MUST be service-role

        if not supabase_url or not supabase_key:
            logger.error("Missing Supabase credentials")
            logger.error(f"   URL: {supabase_url}")
            logger.error(f"   SERVICE ROLE KEY: {'SET' if supabase_key else 'MISSING'}")
            return None

        return create_client(supabase_url, supabase_key)

    except Exception as e:
        logger.error(f"Supabase Init Error: {e}", exc_info=True)
        return None


# ============================================================
# Ping Supabase for health checks
# ============================================================

HEALTH_TABLES = ["students", "hostels", "floors", "rooms"]


def ping_supabase(client: Optional[Client] = None) -> dict:
    """
    Simple connectivity check.
    Does NOT query auth tables.
    """
    try:
        client = client or get_supabase_client()
        if client is None:
            return {"service": "Supabase", "status": "not_configured"}

        results = {}
        for t in HEALTH_TABLES:
            try:
                res = client.table(t).select("id").limit(1).execute()
                results[t] = {
                    "status": "ok",
                    "rows_found": len(res.data or []),
                }
            except Exception as err:
                results[t] = {"status": "error", "detail": str(err)}

        overall = "ok" if all(r["status"] == "ok" for r in results.values()) else "degraded"
        return {
            "service": "Supabase",
            "status": overall,
            "tables": results,
        }

    except Exception as e:
        logger.error(f"Supabase Ping Error: {e}", exc_info=True)
        return {"service": "Supabase", "status": "error", "detail": str(e)}
