from setuptools import setup, find_packages

setup(
    name="waybar-manager",
    version="1.0.0",
    description="Per-monitor Waybar configuration generator for Hyprland, Niri and Mango",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "click",
        "rich",
        "pydantic>=2",
        "tomli-w",
        "psutil",
    ],
    extras_require={
        "test": [
            "pytest",
        ],
    },
    entry_points={
        "console_scripts": [
            "waybar-manager=waybar_manager.cli:cli",
        ],
    },
    python_requires=">=3.11",
)
