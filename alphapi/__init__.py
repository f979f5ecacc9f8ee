#!python


__project__ = "alphapi"
__version__ = "0.1.0"
__license__ = "Apache"
__description__ = "Bayesian protein inference for the AlphaPept ecosystem"
__author__ = "Mann Labs"
__author_email__ = "opensource@alphapept.com"
__github__ = "https://github.com/MannLabs/alphapi"
__keywords__ = [
    "bioinformatics",
    "software",
    "AlphaPept ecosystem",
    "protein inference",
]
__python_version__ = ">=3.10"
__classifiers__ = [
    "Development Status :: 1 - Planning",
    "Intended Audience :: Science/Research",
    "License :: OSI Approved :: Apache Software License",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Topic :: Scientific/Engineering :: Bio-Informatics",
]
__urls__ = {
    "Mann Labs at MPIB": "https://www.biochem.mpg.de/mann",
    "GitHub": __github__,
}
