# cryptoledger/utils/decimal_context.py
import logging
from decimal import getcontext

from cryptoledger import config

logger = logging.getLogger(__name__)

VALID_ROUNDING_MODES = ["ROUND_CEILING", "ROUND_DOWN", "ROUND_FLOOR", "ROUND_HALF_DOWN",
                        "ROUND_HALF_EVEN", "ROUND_HALF_UP", "ROUND_UP", "ROUND_05UP"]


def setup_decimal_context():
    """Sets the global decimal precision and rounding mode."""
    getcontext().prec = config.INTERNAL_CALCULATION_PRECISION
    rounding_mode_to_set = config.DECIMAL_ROUNDING_MODE
    if rounding_mode_to_set not in VALID_ROUNDING_MODES:
        logger.warning(f"Invalid DECIMAL_ROUNDING_MODE '{rounding_mode_to_set}' in config. Using ROUND_HALF_UP as fallback.")
        rounding_mode_to_set = "ROUND_HALF_UP"

    getcontext().rounding = rounding_mode_to_set
    logger.debug(f"Global decimal precision set to {getcontext().prec}, rounding mode to {getcontext().rounding}.")
