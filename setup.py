from setuptools import setup, find_packages

setup(
    name="skillreg",
    version="0.1.0",
    description="skillreg - локальный реестр навыков с адресацией по содержимому и синхронизацией в проекты",
    author="skillreg Team",
    package_dir={"": "src"},
    packages=find_packages("src"),
    include_package_data=True,
    package_data={"skillreg.services.schema": ["*.schema.json"]},
    python_requires=">=3.10",
    install_requires=[
        "typer>=0.16.0",
        "rich>=13.7.1",
        "PyYAML>=6.0.2",
        "jsonschema>=4.21.0",
        "python-dotenv>=1.0.1",
        "semantic_version>=2.10.0",
    ],
    extras_require={
        "test": ["pytest>=8.3.2"],
    },
    entry_points={
        "console_scripts": [
            "skillreg=skillreg.apps.cli.app:app",  # команда `skillreg`
        ],
    },
)
