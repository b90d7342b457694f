"""Sentence splitting, tokenization and TF-IDF topic salience for the local analysis and summary strategies."""
import re
from typing import Dict, List

from sklearn.feature_extraction.text import ENGLISH_STOP_WORDS, TfidfVectorizer

# Sentence end followed by whitespace and the start of a new sentence (capital letter or opening punctuation).
_SENTENCE_BOUNDARY = re.compile(r"(?<=[.!?…])\s+(?=[¿¡\"“'(\[]|[A-ZÁÉÍÓÚÜÑ])")
_WORD = re.compile(r"[^\W\d_]+", re.UNICODE)

SPANISH_STOP_WORDS = frozenset(
    """
    a al algo algunas algunos ante antes como con contra cual cuando de del desde donde durante e el ella ellas
    ellos en entre era eramos eran es esa esas ese eso esos esta estaba estaban estamos estan estar este esto
    estos fue fueron ha hay han hasta la las le les lo los mas me mi mis mucho muy nada ni no nos nosotros o
    otra otro para pero poco por porque que quien se ser si sin sobre su sus tambien tanto te tiene tenemos
    tengo todo todos tu un una uno unos y ya yo vamos va van hacer hace esto aqui alli así también más qué
    cómo cuándo dónde está están será sería hemos
    """.split()
)

STOP_WORDS = frozenset(ENGLISH_STOP_WORDS) | SPANISH_STOP_WORDS


def split_sentences(text: str) -> List[str]:
    """Split on line breaks and on sentence-final punctuation followed by a new sentence. Empty pieces are dropped."""
    sentences: List[str] = []
    for line in (text or "").splitlines():
        for piece in _SENTENCE_BOUNDARY.split(line.strip()):
            piece = piece.strip()
            if piece:
                sentences.append(piece)
    return sentences


def tokenize(text: str) -> List[str]:
    """Lower-cased unicode word tokens (letters only)."""
    return _WORD.findall((text or "").lower())


def extract_key_topics(text: str, limit: int = 10) -> List[Dict[str, float]]:
    """
    Rank terms by salience: a TfidfVectorizer is fitted with each sentence as a document and a term's score is
    the sum of its TF-IDF weights over all sentences. Stop words (English and Spanish) and words shorter than
    three letters are ignored.

    Returns [{"term", "score"}] sorted by score descending (ties by term), at most `limit` items.
    An empty vocabulary yields [].
    """
    sentences = split_sentences(text)
    if not sentences or limit <= 0:
        return []
    vectorizer = TfidfVectorizer(
        lowercase=True,
        token_pattern=r"(?u)\b[^\W\d_]{3,}\b",
        stop_words=sorted(STOP_WORDS),
    )
    try:
        matrix = vectorizer.fit_transform(sentences)
    except ValueError:
        # only stop words / no tokens
        return []
    totals = matrix.sum(axis=0).A1
    terms = vectorizer.get_feature_names_out()
    ranked = sorted(zip(terms, totals), key=lambda kv: (-kv[1], kv[0]))
    return [{"term": str(term), "score": round(float(score), 4)} for term, score in ranked[:limit]]
