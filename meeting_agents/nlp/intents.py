"""
Sentence intent classification for the local analysis strategy.

Intents: "question", "objective", "task". A fourth internal label, "none", absorbs small talk so that
ordinary sentences are not forced into one of the three intents; it is reported as None.
"""
import logging
from typing import List, Optional, Protocol, Tuple

from sklearn.feature_extraction.text import TfidfVectorizer
from sklearn.linear_model import LogisticRegression
from sklearn.pipeline import Pipeline

logger = logging.getLogger(__name__)

QUESTION = "question"
OBJECTIVE = "objective"
TASK = "task"
NO_INTENT = "none"

SEED_PHRASES = {
    QUESTION: [
        "¿Cuándo es la próxima reunión?",
        "¿Quién se encarga de esto?",
        "¿Qué opinas del presupuesto?",
        "¿Tenemos fecha de entrega?",
        "¿Cómo vamos con el proyecto?",
        "¿Por qué se retrasó la entrega?",
        "¿Alguien tiene dudas?",
        "When is the next meeting?",
        "Who is responsible for this?",
        "What do you think about the budget?",
        "Do we have a delivery date?",
        "How is the project going?",
        "Why was the release delayed?",
        "Can you share the numbers?",
    ],
    OBJECTIVE: [
        "Nuestro objetivo es aumentar las ventas este trimestre.",
        "La meta es lanzar la nueva línea de productos.",
        "Queremos mejorar la satisfacción del cliente.",
        "El objetivo principal es reducir los costos.",
        "Buscamos alcanzar un millón de usuarios.",
        "Debemos lograr la certificación antes de fin de año.",
        "Our goal is to increase sales this quarter.",
        "The objective is to launch the new product line.",
        "We want to improve customer satisfaction.",
        "The main goal is to reduce costs.",
        "We aim to reach one million users.",
        "Our target is to achieve the certification by year end.",
    ],
    TASK: [
        "Juan tiene que enviar la propuesta el viernes.",
        "María se encargará de preparar el informe.",
        "Hay que revisar el contrato antes del lunes.",
        "Enviar el presupuesto al cliente.",
        "Preparar la presentación para la próxima semana.",
        "Pedro debe llamar al proveedor.",
        "Tarea asignado a Ana: actualizar la documentación.",
        "John needs to send the proposal on Friday.",
        "Mary will prepare the report.",
        "Review the contract before Monday.",
        "Send the budget to the client.",
        "Prepare the presentation for next week.",
        "Task assigned to Peter: call the supplier.",
        "Action item: update the documentation.",
    ],
    NO_INTENT: [
        "Buenos días a todos.",
        "Gracias por venir.",
        "Hace buen tiempo hoy.",
        "Estuve de vacaciones la semana pasada.",
        "Perfecto, muchas gracias.",
        "Bueno, empecemos.",
        "Good morning everyone.",
        "Thanks for joining.",
        "The weather is nice today.",
        "I was on vacation last week.",
        "Okay, let's get started.",
        "Sounds good to me.",
    ],
}


class IntentClassifier(Protocol):
    def classify(self, sentence: str) -> Tuple[Optional[str], float]:
        """Return (intent or None, confidence in [0, 1])."""
        ...


class SklearnIntentClassifier:
    """
    TF-IDF (word unigrams/bigrams, with "?" and "¿" kept as tokens) followed by logistic regression, trained once
    at construction on the seed phrases above. The fitted pipeline is only read afterwards, so one instance is
    shared by all jobs.
    """

    def __init__(self, seed_phrases: Optional[dict] = None):
        seeds = seed_phrases or SEED_PHRASES
        texts: List[str] = []
        labels: List[str] = []
        for label, phrases in seeds.items():
            texts.extend(phrases)
            labels.extend([label] * len(phrases))
        self._pipeline = Pipeline(
            [
                ("tfidf", TfidfVectorizer(lowercase=True, ngram_range=(1, 2), token_pattern=r"(?u)\b\w+\b|[?¿]")),
                ("clf", LogisticRegression(C=20.0, max_iter=1000)),
            ]
        )
        self._pipeline.fit(texts, labels)
        logger.info("Intent classifier trained on %d seed phrases (%d labels)", len(texts), len(seeds))

    @property
    def labels(self) -> List[str]:
        return [str(c) for c in self._pipeline.classes_]

    def classify(self, sentence: str) -> Tuple[Optional[str], float]:
        if not sentence or not sentence.strip():
            return None, 0.0
        probs = self._pipeline.predict_proba([sentence])[0]
        best = int(probs.argmax())
        label = str(self._pipeline.classes_[best])
        confidence = float(probs[best])
        if label == NO_INTENT:
            return None, confidence
        return label, confidence
