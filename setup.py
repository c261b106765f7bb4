from setuptools import find_packages, setup

setup(
    name="strand-vcs",
    version="0.1.0",
    packages=find_packages(include=["strand", "strand.*"]),
    entry_points={
        "console_scripts": [
            "strand=strand.cli:main",
        ],
    },
    python_requires=">=3.10",
    extras_require={
        "test": ["pytest"],
    },
    description="Strand: single-line version control with a content-addressed store",
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Topic :: Software Development :: Version Control",
        "Programming Language :: Python :: 3.12",
    ],
)
