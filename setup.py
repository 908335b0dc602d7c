#!/usr/bin/env python3
"""
Setup script for the Slide Insight Pipeline project.
Installs the slide_pipeline package and the main.py CLI module.
"""

from setuptools import find_packages, setup

setup(
    name="slide-insight-pipeline",
    version="0.1.0",
    description="Resilient batch pipeline that picks high-signal slides from investor presentations",
    python_requires=">=3.11",
    packages=find_packages(include=["slide_pipeline", "slide_pipeline.*"]),
    py_modules=["main"],
    install_requires=[
        "google-genai>=1.0.0",
        "google-api-core>=2.11.0",
        "openai>=1.40.0",
        "PyMuPDF>=1.24.0",
        "Pillow>=10.0.0",
        "PyYAML>=6.0",
        "python-dotenv>=1.0.0",
    ],
    extras_require={
        "test": [
            "pytest>=8.0.0",
            "anyio>=4.0.0",
            "httpx>=0.27.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "slide-pipeline=main:main",
        ],
    },
)
