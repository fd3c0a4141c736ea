from setuptools import setup, find_packages

setup(
    name="mkdocs-dox",
    version="0.1.0",
    description="MkDocs plugin for JavaScript API docs from dox-style comments",
    keywords="mkdocs dox jsdoc javascript documentation python",
    packages=find_packages(exclude=["tests"]),
    install_requires=[
        "mkdocs>=1.4",
    ],
    extras_require={
        "test": ["pytest"],
    },
    classifiers = [
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Documentation",
        "Topic :: Software Development :: Documentation",
        "Framework :: MkDocs",
    ],
    entry_points={
        "mkdocs.plugins": [
            "dox = mkdocs_dox.plugin:DoxPlugin",
        ],
    },
)
