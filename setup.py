from setuptools import setup, find_packages

setup(
    name="control-advisor",
    version="0.1.0",
    description="Suggests implementation metadata and descriptions for compliance controls",
    author="Sumit Asthana",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    package_data={
        "control_advisor.config": ["*.yaml"],
        "control_advisor.generation": ["prompts/*.yaml"],
    },
    python_requires=">=3.10",
    install_requires=[
        "pydantic>=2.0",
        "pyyaml>=6.0",
        "structlog>=23.0",
        "httpx>=0.25",
        "anthropic[bedrock]>=0.30",
        "python-dotenv>=1.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0",
            "pytest-cov>=4.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "control-advisor=control_advisor.cli:main",
        ],
    },
)
