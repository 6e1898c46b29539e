"""
Remote collaborators: the job service (Apify) and text generation (LangChain).
"""

from .job_runner import RemoteJobRunner
from .job_service import ApifyJobService, JobHandle, JobService, JobState
from .text_generation import TextGenerator, create_text_generator

__all__ = [
    "ApifyJobService",
    "JobHandle",
    "JobService",
    "JobState",
    "RemoteJobRunner",
    "TextGenerator",
    "create_text_generator",
]
