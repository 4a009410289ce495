from setuptools import find_packages, setup

setup(
    name="blocksmith",
    version="0.1.0",
    description="Generate MakeCode programs that are guaranteed to decompile into editor blocks",
    package_dir={"": "src"},
    packages=find_packages("src"),
    install_requires=[
        "click>=8.1",
        "langchain-core>=0.3",
        "langchain-google-genai>=2.0",
        "langchain-openai>=0.2",
        "pydantic>=2.0",
        "PyYAML>=6.0",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        'console_scripts': [
            'blocksmith=blocksmith.cli:cli',
        ],
    },
    python_requires=">=3.9",
)
