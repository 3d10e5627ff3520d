import json
import logging
import re
from typing import List, Optional

from openai import OpenAI, OpenAIError

from tick8.core.errors import GeneratorUnavailable, InvalidInput
from tick8.models.vocab import VocabItem, validate_vocab_list

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```(?:json)?", re.IGNORECASE)

_SYSTEM_PROMPT = (
    "You are a flashcard content generator. "
    "Convert the user prompt into a JSON array of learning items. "
    'Each item MUST have these exact fields: "id" (string number, starting from "1"), '
    '"word" (question/term/front-side) and "answer" (answer/definition/back-side). '
    "Output ONLY the valid JSON array. No markdown formatting, no explanations. "
    'Example output: [{"id": "1", "word": "Capital of France", "answer": "Paris"}]'
)


def parse_generated_items(text: str) -> List[VocabItem]:
    """
    Nettoie la réponse brute du modèle (blocs ```json) puis applique
    la même validation que n'importe quelle écriture.
    """
    clean = _FENCE_RE.sub("", text or "").strip()
    try:
        raw = json.loads(clean)
    except ValueError as e:
        raise InvalidInput(f"Réponse du générateur non JSON: {e}") from e
    return validate_vocab_list(raw)


class VocabGenerator:
    """
    Frontière avec le générateur IA : produit une liste d'items candidats.
    Sans OPENAI_API_KEY, le service est indisponible (pas de repli local).
    """

    def __init__(self, api_key: Optional[str] = None, model: str = "gpt-4o-mini", client=None):
        self.model = model
        self._client = client
        if self._client is None and api_key:
            self._client = OpenAI(api_key=api_key)

    @property
    def available(self) -> bool:
        return self._client is not None

    def generate(self, prompt: str) -> List[VocabItem]:
        if not prompt or not isinstance(prompt, str) or not prompt.strip():
            raise InvalidInput("Prompt requis")
        if not self.available:
            raise GeneratorUnavailable("Génération IA non configurée (clé manquante)")

        try:
            comp = self._client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": _SYSTEM_PROMPT},
                    {"role": "user", "content": prompt.strip()},
                ],
                temperature=0.2,
            )
            text = comp.choices[0].message.content or ""
        except OpenAIError as e:
            logger.warning("OpenAI error: %s", e)
            raise GeneratorUnavailable(f"Échec de la génération: {e}") from e

        items = parse_generated_items(text)
        logger.info("Générateur: %d items produits", len(items))
        return items
