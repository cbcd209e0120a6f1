"""
Clients Supabase partagés.
- get_supabase: client 'anon' (lectures publiques, catalogue)
- get_service_supabase: client service-role pour les écritures serveur (commandes, clients)
Les deux clients appliquent STORE_TIMEOUT_SECONDS sur les appels PostgREST.
"""
from typing import Optional
from supabase import create_client, Client, ClientOptions
from storefront.config import SUPABASE_URL, SUPABASE_ANON, SUPABASE_SERVICE_KEY, STORE_TIMEOUT_SECONDS

_supabase: Optional[Client] = None
_service_supabase: Optional[Client] = None

def _options() -> ClientOptions:
    return ClientOptions(postgrest_client_timeout=STORE_TIMEOUT_SECONDS)

def get_supabase() -> Client:
    global _supabase
    if _supabase is None:
        if not SUPABASE_URL or not SUPABASE_ANON:
            raise RuntimeError("SUPABASE_URL/SUPABASE_ANON_KEY manquants")
        _supabase = create_client(SUPABASE_URL, SUPABASE_ANON, options=_options())
    return _supabase

def get_service_supabase() -> Client:
    global _service_supabase
    if not SUPABASE_SERVICE_KEY:
        raise RuntimeError("SUPABASE_SERVICE_KEY manquant pour get_service_supabase()")
    if _service_supabase is None:
        _service_supabase = create_client(SUPABASE_URL, SUPABASE_SERVICE_KEY, options=_options())
    return _service_supabase
