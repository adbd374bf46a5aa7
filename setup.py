"""
Setup configuration for Deku Task Tracker package
"""

from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

setup(
    name="deku-task-tracker",
    version="1.0.0",
    author="Your Name",
    author_email="your.email@example.com",
    description="Personal task tracker with recurring due dates, subtasks and live updates",
    long_description=long_description,
    long_description_content_type="text/markdown",
    url="https://github.com/yourusername/deku-task-tracker",
    packages=find_packages(exclude=["tests", "tests.*"]),
    py_modules=["start_tracker"],
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: End Users/Desktop",
        "Topic :: Office/Business :: Scheduling",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
    ],
    python_requires=">=3.9",
    install_requires=[
        "fastapi>=0.100.0",
        "uvicorn[standard]>=0.23.0",
        "pydantic>=2.0",
        "httpx>=0.24.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0",
            "pytest-cov>=4.0",
            "black>=23.0",
            "flake8>=6.0",
            "mypy>=1.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "deku-tracker=start_tracker:main",
        ],
    },
)
