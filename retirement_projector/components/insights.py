from typing import Optional

from loguru import logger

from ..models import SimulationResult


def _openai_insight(prompt: str) -> Optional[str]:
    """Attempt to query OpenAI for an insight. Returns None on failure."""
    try:
        from openai import OpenAI  # type: ignore
        client = OpenAI()
        resp = client.responses.create(model="gpt-4o-mini", input=prompt)
        text = getattr(resp, "output_text", None)
        if text:
            return text.strip()
    except Exception as exc:  # not installed, no key, network
        logger.info("OpenAI insight unavailable: {}", exc)
        return None
    return None


def generate_insights(result: SimulationResult, target_success_rate: float = 0.9, use_ai: bool = True) -> str:
    """Return a short insight about simulation results.

    Attempts to use OpenAI when an API key is configured; otherwise falls back
    to a simple rule-based message so the app works offline and in tests.
    """
    success = float(result.success_rate)
    median_net = float(result.percentiles.get("p50", [0.0])[-1]) if result.percentiles else 0.0
    last_age = result.ages[-1] if result.ages else "end"

    if use_ai:
        prompt = (
            "You are a financial planning assistant. Provide a concise insight "
            "(one or two sentences) about this retirement plan. "
            f"Success probability: {success*100:.1f}% against a {target_success_rate*100:.0f}% target. "
            f"Median net worth: ${median_net:,.0f} at age {last_age}. "
            f"Failed paths last {result.failure.average_years_lasted:.1f} retirement years on average."
        )
        text = _openai_insight(prompt)
        if text:
            return text

    # Fallback heuristic
    if success >= target_success_rate:
        outlook = "high chance of success"
    elif success >= 0.6:
        outlook = "moderate chance of success"
    else:
        outlook = "plan may be at risk"
    message = (
        f"Your plan has a {outlook}. Median projected net worth at age {last_age} "
        f"is ${median_net:,.0f}."
    )
    if result.failure.count:
        message += (
            f" In the paths that run out, the money lasts {result.failure.median_years_lasted:.0f} "
            f"years into retirement (worst case {result.failure.worst_case})."
        )
    return message
