from setuptools import setup, find_packages

setup(
    name="theme_editor",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "requests",
        "pyyaml",
        "textual",
        "pydantic>=2.0",
    ],
    extras_require={
        "test": [
            "pytest",
        ],
    },
    entry_points={
        "console_scripts": [
            "theme-editor=theme_editor.cli:main",
        ],
    },
    python_requires=">=3.10",
    description="Chat-driven Shopify theme editing with per-file diff review.",
)
