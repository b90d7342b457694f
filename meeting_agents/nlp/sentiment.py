"""Lexicon sentiment scoring (Spanish and English word lists)."""
from typing import Dict

from meeting_agents.nlp.text import tokenize

POSITIVE_WORDS = frozenset(
    """
    bien bueno buena buenos buenas excelente genial perfecto perfecta positivo positiva acuerdo éxito exito
    exitoso logro logrado mejor mejora mejorar feliz contento contentos satisfecho satisfechos gracias útil
    fácil claro oportunidad crecimiento avance avanzado listo lista aprobado aprobada resuelto
    good great excellent perfect positive agree agreed success successful achieve achieved better improve
    improved happy glad satisfied thanks useful easy clear opportunity growth progress ready approved solved
    win love nice
    """.split()
)

NEGATIVE_WORDS = frozenset(
    """
    mal malo mala malos malas problema problemas error errores fallo falla fallos difícil dificil riesgo
    riesgos retraso retrasos tarde preocupa preocupación preocupado bloqueado bloqueo imposible negativo
    negativa peor pérdida perdida queja quejas conflicto crisis urgente caro costoso cancelado
    bad poor problem problems issue issues error errors failure fail failed difficult hard risk risks delay
    delayed late worry worried concern blocked blocker impossible negative worse loss complaint conflict
    crisis urgent expensive cancelled canceled
    """.split()
)


def score_sentiment(text: str) -> Dict[str, float]:
    """
    score = (positive - negative) / max(positive + negative, 1), always within [-1, 1].
    comparative = score / token count (0 when there are no tokens).
    """
    tokens = tokenize(text)
    positive = sum(1 for t in tokens if t in POSITIVE_WORDS)
    negative = sum(1 for t in tokens if t in NEGATIVE_WORDS)
    score = (positive - negative) / max(positive + negative, 1)
    comparative = score / len(tokens) if tokens else 0.0
    return {
        "score": float(score),
        "comparative": float(comparative),
        "positive_count": positive,
        "negative_count": negative,
    }
