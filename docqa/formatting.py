"""
Formatting helpers shared by the scripts, the evaluator and the web app.

    format_similarity_score(0.8734)  ->  "87.3%"
    format_cost(0.0025)              ->  "$0.002500"
"""


def format_similarity_score(score: float) -> str:
    """0.8734 -> '87.3%'"""
    return f"{score * 100:.1f}%"


def format_cost(cost: float) -> str:
    """0.0025 -> '$0.002500'"""
    return f"${cost:.6f}"


def preview(text: str, length: int = 150) -> str:
    if len(text) <= length:
        return text
    return text[:length] + "..."
