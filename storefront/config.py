# storefront.config
from pathlib import Path
from decimal import Decimal
import os
from dotenv import load_dotenv

# Calculer le chemin du projet puis charger .env de manière explicite
BASE_DIR = Path(__file__).resolve().parent.parent
ENV_PATH = BASE_DIR / ".env"
load_dotenv(dotenv_path=ENV_PATH, override=True)

"""
Configuration centrale du service checkout.

- Charge le fichier .env à la racine du projet (BASE_DIR/.env)
- Normalise et expose les secrets/URLs (Supabase, Stripe), sécurité cookies, CORS/hosts
- Expose la configuration boutique: devise, taxe, coordonnées bancaires, timeouts
"""

def _clean_env(v: str) -> str:
    """
    Nettoie une valeur d'environnement:
    - supprime les espaces et guillemets (simples, doubles) et backticks
    - retourne toujours une chaîne (jamais None)
    """
    return (v or "").strip().strip("'").strip('"').strip("`")

def _env_flag(name: str, default: str = "false") -> bool:
    return _clean_env(os.getenv(name, default)).lower() in ("1", "true", "yes")

# Supabase: URL et clés (anon/service)
# - SUPABASE_URL peut parfois être sans schéma: on préfixe en https:// si nécessaire
SUPABASE_URL = _clean_env(os.getenv("SUPABASE_URL") or os.getenv("NEXT_PUBLIC_SUPABASE_URL") or "")
SUPABASE_ANON = _clean_env(os.getenv("SUPABASE_ANON_KEY") or "")
SUPABASE_SERVICE_KEY = _clean_env(os.getenv("SUPABASE_SERVICE_KEY") or "")

if SUPABASE_URL and not SUPABASE_URL.startswith("http"):
    SUPABASE_URL = "https://" + SUPABASE_URL
if SUPABASE_URL.endswith("/"):
    SUPABASE_URL = SUPABASE_URL.rstrip("/")

# Stripe: l'absence de STRIPE_SECRET_KEY signifie "paiement par carte non configuré"
STRIPE_PUBLIC_KEY = _clean_env(os.getenv("STRIPE_PUBLIC_KEY") or "")
STRIPE_SECRET_KEY = _clean_env(os.getenv("STRIPE_SECRET_KEY") or "")
STORE_CURRENCY = _clean_env(os.getenv("STORE_CURRENCY") or "gbp").lower()

# Timeouts réseau (secondes): passerelle de paiement et base de données
GATEWAY_TIMEOUT_SECONDS = float(_clean_env(os.getenv("GATEWAY_TIMEOUT_SECONDS") or "10"))
STORE_TIMEOUT_SECONDS = float(_clean_env(os.getenv("STORE_TIMEOUT_SECONDS") or "5"))

# Taxe: pourcentage pré-calculé appliqué au sous-total
TAX_ENABLED = _env_flag("TAX_ENABLED")
TAX_RATE = Decimal(_clean_env(os.getenv("TAX_RATE") or "0"))

# Virement bancaire: coordonnées affichées au client
BANK_NAME = _clean_env(os.getenv("BANK_NAME") or "")
BANK_ACCOUNT_NAME = _clean_env(os.getenv("BANK_ACCOUNT_NAME") or "")
BANK_ACCOUNT_NUMBER = _clean_env(os.getenv("BANK_ACCOUNT_NUMBER") or "")
BANK_SORT_CODE = _clean_env(os.getenv("BANK_SORT_CODE") or "")
BANK_IBAN = _clean_env(os.getenv("BANK_IBAN") or "")
BANK_REFERENCE_PREFIX = _clean_env(os.getenv("BANK_REFERENCE_PREFIX") or "ORD")

# Sessions checkout en mémoire (adaptateur HTTP)
CHECKOUT_SESSION_TTL_SECONDS = int(_clean_env(os.getenv("CHECKOUT_SESSION_TTL_SECONDS") or "3600"))

# Cookies / sécurité
COOKIE_SECURE = _env_flag("COOKIE_SECURE")
CUSTOMER_COOKIE_NAME = _clean_env(os.getenv("CUSTOMER_COOKIE_NAME") or "store_session")

# CORS (dev)
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
ALLOWED_HOSTS = [h.strip() for h in os.getenv("ALLOWED_HOSTS", "localhost,127.0.0.1,testserver").split(",") if h.strip()]
