from os import getenv


class Settings:
    """Configuration lue une seule fois au démarrage depuis l'environnement"""

    def __init__(self):
        self.APP_ENV = getenv("APP_ENV", "development")
        self.LOG_LEVEL = getenv("LOG_LEVEL", "INFO")

        # Session legacy (cookie lb_session)
        self.SESSION_TTL_DAYS = int(getenv("SESSION_TTL_DAYS", "30"))  #expire au bout de 30 jours
        self.SESSION_CLEANUP_PROBABILITY = float(getenv("SESSION_CLEANUP_PROBABILITY", "0.01"))

        # Session du fournisseur d'identité externe (JWT signé)
        self.AUTH_SECRET = getenv("AUTH_SECRET") or None

        # Stripe
        self.STRIPE_SECRET_KEY = getenv("STRIPE_SECRET_KEY") or None
        self.STRIPE_WEBHOOK_SECRET = getenv("STRIPE_WEBHOOK_SECRET") or None
        self.LAUNCH_PACK_PRICE_CENTS = int(getenv("LAUNCH_PACK_PRICE_CENTS", "900"))

    @property
    def is_production(self) -> bool:
        return self.APP_ENV == "production"

    @property
    def session_ttl_seconds(self) -> int:
        return self.SESSION_TTL_DAYS * 24 * 60 * 60


settings = Settings()


def get_settings() -> Settings:
    """Dépendance settings (surchargée dans les tests)"""
    return settings
