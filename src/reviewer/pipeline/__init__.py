"""Concurrent review pipeline — discover, produce, review, collect."""

from reviewer.pipeline.collector import RunSummary, collect_outcomes, summarize
from reviewer.pipeline.discovery import Discoverer, discover_files, is_binary
from reviewer.pipeline.producer import JobProducer, read_candidate
from reviewer.pipeline.schemas import Job, Outcome, Review
from reviewer.pipeline.worker_pool import ReviewRun, WorkerPool

__all__ = [
    "Discoverer",
    "Job",
    "JobProducer",
    "Outcome",
    "Review",
    "ReviewRun",
    "RunSummary",
    "WorkerPool",
    "collect_outcomes",
    "discover_files",
    "is_binary",
    "read_candidate",
    "summarize",
]
