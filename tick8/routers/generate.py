from typing import List

from fastapi import APIRouter, Depends

from tick8.core.deps import get_generator
from tick8.core.security import get_current_user_id
from tick8.models.vocab import VocabItem
from tick8.schemas.generate import GenerateIn
from tick8.services.generator import VocabGenerator

router = APIRouter(prefix="/api/generate-vocab", tags=["generate"])


@router.post("", response_model=List[VocabItem])
def generate_vocab(
    payload: GenerateIn,
    _: str = Depends(get_current_user_id),
    generator: VocabGenerator = Depends(get_generator),
):
    return generator.generate(payload.prompt)
