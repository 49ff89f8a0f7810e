import json
import random
from typing import Any, Union


def jittered_delay(base_delay: Union[int, float], randomness_percent: float = 0.0) -> float:
    """
    Spread a delay randomly around its base value.

    Args:
        base_delay: The base delay in seconds
        randomness_percent: Percentage of randomness (default: none)

    Example:
        jittered_delay(60)        # 60.0
        jittered_delay(60, 10.0)  # between 54 and 66 seconds
    """
    if base_delay <= 0:
        return 0.0
    if randomness_percent <= 0:
        return float(base_delay)

    random_factor = 1 + random.uniform(-randomness_percent / 100, randomness_percent / 100)
    return max(base_delay * random_factor, 0.001)


def truncate_content(content: str, max_length: int = 500) -> str:
    """Truncate long content for better error readability"""
    if len(content) <= max_length:
        return content
    return content[:max_length] + f"... [truncated, total {len(content)} characters]"


def get_json_if_valid(json_str: str) -> Any:
    """Decoded JSON value, or the text unchanged when it is not JSON (HTML pages)"""
    try:
        return json.loads(json_str)
    except (TypeError, ValueError):
        return json_str
