from setuptools import find_packages, setup

LATEST_VERSION = "1.0.0"

exclude_packages = [
    "pytest",
    "pytest-asyncio",
]

with open(r"README.md", "r", encoding="utf-8") as f:
    long_description = f.read()

with open("requirements.txt", "r") as f:
    reqs = [
        line.strip() for line in f
        if line.strip() and not line.startswith("#") and not any(pkg in line for pkg in exclude_packages)
    ]

setup(
    name="styling-credits",
    version=LATEST_VERSION,
    description="Credits ledger and API for the styling app",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.10",
    install_requires=reqs,
    extras_require={
        "test": [
            "pytest>=8.0",
            "pytest-asyncio>=0.23",
        ],
    },
)
