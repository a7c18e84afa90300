from setuptools import setup, find_packages

setup(
    name="solarprop-finance",
    version="0.1.0",
    packages=find_packages(
        include=["finance", "finance.*", "analytics", "analytics.*"], exclude=["inputs*", "tests*"]
    ),
    install_requires=[
        "pyyaml",
        "pandas",
        "openpyxl",
    ],
    extras_require={"test": ["pytest"]},
    entry_points={"console_scripts": ["solarprop=analytics.cli:main"]},
)
