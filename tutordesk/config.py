import logging
import os

# -----------------------------
# Backend endpoints
# -----------------------------
TUTOR_RATES_PATH = "/tutor-rates"
PARENT_RATES_PATH = "/parent-rates"
RATE_LINKS_PATH = "/rate-links"
TUTOR_GROUPS_PATH = "/tutor-groups"

HTTP_TIMEOUT_SECONDS = 15.0

CLASS_TYPES = ["individual", "group"]
EXPERIENCE_LEVELS = ["junior", "standard", "senior", "expert"]

GENERIC_ERROR_MESSAGE = "Something went wrong. Please try again."
UNAUTHORIZED_MESSAGE = "You are logged out. Logging in again..."

# -----------------------------
# Cached collections
# -----------------------------
TUTOR_RATES = "tutor_rates"
PARENT_RATES = "parent_rates"
RATE_LINKS = "rate_links"
TUTOR_GROUPS = "tutor_groups"

# Which cached collections each mutation makes stale
INVALIDATES = {
    "create_tutor_rate": (TUTOR_RATES,),
    "update_tutor_rate": (TUTOR_RATES, RATE_LINKS),
    "delete_tutor_rate": (TUTOR_RATES, RATE_LINKS),
    "create_parent_rate": (PARENT_RATES,),
    "update_parent_rate": (PARENT_RATES, RATE_LINKS),
    "delete_parent_rate": (PARENT_RATES, RATE_LINKS),
    "create_link": (RATE_LINKS,),
    "delete_link": (RATE_LINKS,),
    "create_tutor_group": (TUTOR_GROUPS,),
    "update_tutor_group": (TUTOR_GROUPS,),
    "delete_tutor_group": (TUTOR_GROUPS, TUTOR_RATES),
}

# -----------------------------
# Display columns
# -----------------------------
RATE_COLUMNS = [
    "id",
    "name",
    "class_type",
    "subject",
    "rate",              # two-decimal wire string
    "is_default",
    "is_active",
    "description",
]
PROFIT_COLUMNS = [
    "tutor_rate",
    "parent_rate",
    "class_type",
    "tutor_amount",
    "parent_amount",
    "profit",
    "margin",            # one-decimal display string
]


def get_setting(name: str, default: str = "") -> str:
    """Streamlit secrets first, then the environment."""
    try:
        import streamlit as st

        if name in st.secrets:
            return str(st.secrets[name])
    except FileNotFoundError:
        pass
    return os.getenv(name, default)


def configure_logging() -> None:
    level = os.getenv("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
