from pathlib import Path
from setuptools import setup, find_packages

requirements = Path(__file__).with_name("requirements.txt").read_text().splitlines()

setup(
    name="rendezvous",
    version="0.1.0",
    description="Predict where and when moving people are likely to meet, biased toward nearby venues",
    author="Rendezvous Project",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    install_requires=[r for r in requirements if r and not r.startswith("#")],
    extras_require={"test": ["pytest"]},
    python_requires=">=3.10",
    classifiers=[
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
)
