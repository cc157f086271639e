"""
Feedback Router
===============

Write endpoints. Both go through the ingestion pipeline, so every batch is
classified the same way and invalidates the cached views before returning.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends

from feedback_intel.dependencies import get_ingestion_pipeline
from feedback_intel.models.views import FeedbackIn, IngestResult
from feedback_intel.services.ingestion import IngestionPipeline
from feedback_intel.services.seed_data import demo_feedback

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/feedback", response_model=IngestResult)
async def ingest_feedback(
    batch: List[FeedbackIn],
    pipeline: IngestionPipeline = Depends(get_ingestion_pipeline),
):
    """Ingest a batch of raw feedback. Bad records are reported, not fatal."""
    return await pipeline.ingest(batch)


@router.post("/seed", response_model=IngestResult)
async def seed_feedback(pipeline: IngestionPipeline = Depends(get_ingestion_pipeline)):
    """Load the demo catalog."""
    return await pipeline.ingest(demo_feedback(), label="Seeded")
