from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends

from ..config import Settings
from ..deps import get_app_settings, get_cohere_provider
from ..envelope import success
from ..errors import upstream_failure
from ..providers.cohere import CohereProvider
from ..schemas import GenerationRequest
from ..validation import require_generation_credentials, require_prompt

logger = logging.getLogger("proxy-inference-server.routers.generation")

router = APIRouter(prefix="/api/cohere", tags=["generation"])


@router.post("/inference")
async def cohere_inference(
    payload: Optional[GenerationRequest] = None,
    settings: Settings = Depends(get_app_settings),
    provider: CohereProvider = Depends(get_cohere_provider),
):
    request = require_prompt(payload)
    require_generation_credentials(settings)

    logger.info(
        "proxying generation request",
        extra={
            "model": request.model,
            "max_tokens": request.max_tokens,
            "prompt_length": len(request.prompt),
        },
    )

    with upstream_failure("Cohere inference failed"):
        result = await provider.generate(
            prompt=request.prompt,
            model=request.model,
            max_tokens=request.max_tokens,
            temperature=request.temperature,
        )

    return success(
        response=result.generated_text,
        model=result.model,
        usage=result.usage.model_dump(),
    )
