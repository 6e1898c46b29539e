"""
Setup script for the lead generation pipeline.

Allows development installation with `pip install -e .`
"""

from setuptools import setup, find_packages

setup(
    name="leadgen-pipeline",
    version="0.1.0",
    packages=find_packages(include=["leadgen", "leadgen.*"]),
    python_requires=">=3.11",
    install_requires=[
        "python-dotenv>=1.0",
        "pydantic>=2.0",
        "tenacity>=8.2",
        "requests>=2.31",
        "langchain-core>=0.2",
        "langchain-openai>=0.1",
        "json-repair>=0.25",
    ],
    extras_require={
        "test": ["pytest>=7.4"],
    },
)
