from setuptools import setup
from pathlib import Path

this_directory = Path(__file__).parent
long_description = (this_directory / "README.md").read_text(encoding="utf-8")

setup(
    name="rrvideo",
    version="2.0.0",
    description="Turn rrweb session recordings into videos and element screenshots with zendriver",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=["rrvideo", "rrvideo.video", "rrvideo.snapshot"],
    install_requires=[
        "zendriver",
        "Pillow",
        "tqdm",
    ],
    extras_require={
        "test": ["pytest", "pytest-asyncio"],
    },
    entry_points={
        "console_scripts": ["rrvideo=rrvideo.cli:main"],
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
    python_requires=">=3.10",
)
