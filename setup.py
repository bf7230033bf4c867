"""
Setup script for fluency-drill.

Fluency Drill is an adaptive learner model for timed recall practice.
It serves three roles:

1. Learner Model - Forgetting curve, speed scoring and item selection
2. Drill Engine - Deadlines, rounds, calibration and key input
3. Tuning Tools - Terminal simulation and state inspection

The 'fluency' command is the entry point.
"""

from setuptools import find_packages, setup

setup(
    name="fluency-drill",
    version="1.0.0",
    description="Adaptive speed-and-recall drill engine with a half-life forgetting model",
    long_description=open("README.md", encoding="utf-8").read() if __import__("os").path.exists("README.md") else "",
    long_description_content_type="text/markdown",
    author="Fluency Drill",
    packages=find_packages(include=["fluency", "fluency.*"]),
    python_requires=">=3.10",
    install_requires=[
        # CLI
        "typer>=0.9.0",
        "rich>=13.0.0",
        # Config & Validation
        "pydantic>=2.0.0",
        "pydantic-settings>=2.0.0",
        # Logging
        "loguru>=0.7.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
            "pytest-cov>=4.0.0",
            "ruff>=0.1.0",
            "mypy>=1.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "fluency=fluency.delivery.drill_cli:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: Console",
        "Intended Audience :: Developers",
        "Intended Audience :: Education",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Education",
        "Topic :: Education :: Computer Aided Instruction (CAI)",
    ],
    keywords="learning spaced-repetition fluency automaticity drill",
)
