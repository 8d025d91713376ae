# -*- coding: utf-8 -*-
"""Recommendation prompt template.

Bump ``PROMPT_VERSION`` whenever the template text changes; it is stored with
every recommendation.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable

PROMPT_VERSION = 1

_GENDER = {"male": "muž", "female": "žena"}
_GOAL = {"lose_fat": "zhubnout", "gain_muscle": "nabrat svaly"}

_TEMPLATE = """
Uživatel: {gender}, {weight} kg, cíl {goal} na {target_weight} kg.

Včerejší jídelníček:
Celkem: {calories} kcal, {protein}g bílkovin ({protein_pct}%), {carbs}g sacharidů ({carbs_pct}%), {fat}g tuků ({fat_pct}%)

Seznam jídel:
{entries}

Prosím, poskytni personalizované doporučení na základě těchto dat. Odpověz POUZE čistým JSON objektem bez jakéhokoliv formátování markdown nebo vysvětlujícího textu. JSON objekt musí obsahovat následující klíče:

{{
  "summary": "Stručné shrnutí včerejšího jídelníčku",
  "positives": [
    "Co dělá uživatel dobře - bod 1",
    "Co dělá uživatel dobře - bod 2"
  ],
  "improvements": [
    "Doporučení ke zlepšení - bod 1"
  ],
  "motivation": "Motivační zpráva pro uživatele"
}}

Odpověď musí být v češtině a obsahovat POUZE validní JSON objekt bez jakéhokoliv úvodního nebo závěrečného textu.
"""


def _fmt(value: Any) -> str:
    if value is None:
        return "?"
    number = float(value)
    return str(int(number)) if number.is_integer() else f"{number:.1f}"


def macro_percentages(protein: float, carbs: float, fat: float) -> Dict[str, int]:
    """Share of each macro in the gram total, rounded to whole percents."""
    total = protein + carbs + fat
    if total <= 0:
        return {"protein": 0, "carbs": 0, "fat": 0}
    return {
        "protein": round(protein / total * 100),
        "carbs": round(carbs / total * 100),
        "fat": round(fat / total * 100),
    }


def format_entries(entries: Iterable[Dict[str, Any]]) -> str:
    return "\n".join(
        f"- {e.get('food_name')} ({e.get('meal_type')}): {_fmt(e.get('calories'))} kcal, "
        f"{_fmt(e.get('protein'))}g bílkovin, {_fmt(e.get('carbs'))}g sacharidů, {_fmt(e.get('fat'))}g tuků"
        for e in entries
    )


def build_prompt(profile: Dict[str, Any], diary: Dict[str, Any]) -> str:
    protein = float(diary.get("protein_consumed_g") or 0)
    carbs = float(diary.get("carbs_consumed_g") or 0)
    fat = float(diary.get("fat_consumed_g") or 0)
    pct = macro_percentages(protein, carbs, fat)
    return _TEMPLATE.format(
        gender=_GENDER.get(profile.get("gender"), "osoba"),
        weight=_fmt(profile.get("weight_value")),
        goal=_GOAL.get(profile.get("goal"), "udržet váhu"),
        target_weight=_fmt(profile.get("target_weight_value")),
        calories=_fmt(diary.get("calories_consumed")),
        protein=_fmt(protein),
        carbs=_fmt(carbs),
        fat=_fmt(fat),
        protein_pct=pct["protein"],
        carbs_pct=pct["carbs"],
        fat_pct=pct["fat"],
        entries=format_entries(diary.get("food_entries") or []),
    )
