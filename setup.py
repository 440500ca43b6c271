"""Setup script for the Minna no Nasu App backend."""

from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

base_requirements = [
    "python-dotenv>=1.0.0",
    "pydantic>=2.5.0",
    "pydantic-settings>=2.1.0",
    "fastapi>=0.104.0",
    "uvicorn[standard]>=0.24.0",
    "aiohttp>=3.9.0",
    "httpx>=0.25.0",
    "firebase-admin>=6.4.0",
    "google-cloud-firestore>=2.13.0",
    "google-api-core>=2.15.0",
    "google-genai>=1.0.0",
    "stripe>=8.0.0",
    "beautifulsoup4>=4.12.0",
    "lxml>=5.0.0",
    "loguru>=0.7.2",
    "python-dateutil>=2.8.2",
]

setup(
    name="nasu-app",
    version="1.0.0",
    author="Minna no Nasu App Team",
    description="Backend API for the Minna no Nasu regional community app",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Framework :: FastAPI",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
    python_requires=">=3.11",
    install_requires=base_requirements,
    extras_require={
        "dev": [
            "pytest>=7.4.3",
            "pytest-asyncio>=0.21.1",
            "pytest-cov>=4.1.0",
            "pytest-mock>=3.12.0",
            "black>=23.12.0",
            "flake8>=6.1.0",
            "mypy>=1.7.1",
        ]
    },
    entry_points={
        "console_scripts": [
            "nasu-app=nasu_app.cli:main",
        ],
    },
)
