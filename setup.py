#!/usr/bin/env python3
from setuptools import setup

long_description = "Random access to the fields of ScanImage scans (including multiROI)."

setup(
    name='scanfields',
    version='0.1.0',
    description="Field-based 5-d indexing of ScanImage tiff scans (uniform and multiROI).",
    long_description=long_description,
    license='MIT',
    keywords='ScanImage multiROI mesoscope fields 2016b tiff',
    packages=['scanfields'],
    install_requires=['numpy>=1.12.0', 'tifffile>=2019.2.22'],
    extras_require={'test': ['nose2', 'pytest']},
    classifiers=[
        'Development Status :: 3 - Alpha',
        'Intended Audience :: Science/Research',
        'Programming Language :: Python :: 3 :: Only',
        'License :: OSI Approved :: MIT License',
        'Natural Language :: English',
        'Topic :: Scientific/Engineering :: Bio-Informatics',
    ],
)
