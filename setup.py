"""
ModelSchema - Declarative Data-Model Schemas
Install: pip install -e .
"""

from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as f:
    long_description = f.read()

setup(
    name="modelschema",
    version="1.0.0",
    author="Diegoproggramer",
    author_email="",
    description="Parse, validate and compare declarative YAML/JSON data-model schemas",
    long_description=long_description,
    long_description_content_type="text/markdown",
    url="https://github.com/Diegoproggramer/modelschema",
    packages=find_packages(exclude=["tests", "tests.*"]),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Topic :: Software Development :: Libraries :: Python Modules",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Framework :: Pydantic :: 2",
    ],
    python_requires=">=3.10",
    install_requires=[
        "pydantic>=2.0.0",
        "PyYAML>=6.0",
        "redis>=4.0.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0",
            "fakeredis>=2.0.0",
            "black>=23.0",
            "ruff>=0.1.0",
        ],
    },
    keywords="schema, yaml, validation, data-model, migrations, pydantic, redis",
    project_urls={
        "Bug Reports": "https://github.com/Diegoproggramer/modelschema/issues",
        "Source": "https://github.com/Diegoproggramer/modelschema",
    },
)
