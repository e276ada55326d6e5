from setuptools import setup, find_packages

setup(
    name="nodectl",
    version="0.1.0",
    description="nodectl - remote control plane for the lifecycle of daemon nodes",
    author="nodectl Team",
    package_dir={"": "src"},
    packages=find_packages("src"),
    include_package_data=True,
    python_requires=">=3.10",
    install_requires=[
        "typer>=0.16.0",
        "fastapi>=0.110.0",
        "uvicorn>=0.29.0",
        "pydantic>=2.6",
        "requests>=2.31",
        "python-dotenv>=1.0.1",
        "psutil>=5.9.8",
    ],
    extras_require={
        "test": [
            "pytest>=8.3.2",
            "httpx>=0.27.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "nodectl=nodectl.apps.cli.app:app",  # команда `nodectl`
        ],
    },
)
