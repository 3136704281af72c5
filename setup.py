"""
navprefetch - Navigation acceleration layer
Route prediction, route/data prefetching and a size-bounded TTL cache
"""

from setuptools import find_packages, setup

setup(
    name="navprefetch",
    version="1.0.0",
    description="Navigation acceleration layer - route prediction, prefetching and caching",
    author="navprefetch Development Team",
    packages=find_packages(exclude=["tests*", "docs*"]),
    python_requires=">=3.10",
    install_requires=[
        "pydantic>=2.0.0",
        "pydantic-settings>=2.0.0",
        "networkx>=3.0.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.4.0",
            "pytest-asyncio>=0.21.0",
            "pytest-cov>=4.1.0",
            "mypy>=1.5.0",
            "ruff>=0.0.290",
        ],
    },
)
