#!/usr/bin/env python

from pathlib import Path
from setuptools import setup, find_packages

project_root = Path(__file__).resolve().parent
long_description = project_root.joinpath('readme.rst').read_text('utf-8')

about = {}
with project_root.joinpath('cached_attribute', '__version__.py').open('r', encoding='utf-8') as f:
    exec(f.read(), about)

optional_dependencies = {
    'dev': [                                            # Development env requirements
        'coverage',
        'pytest',
    ],
}

requirements = [
    'cachetools>=5.0',                                  # cached_attribute.stores.MemoryStore
    'PyYAML',                                           # cached_attribute.config.load_config_file
    'tzlocal',                                          # cached_attribute.logging
    'wrapt',                                            # cached_attribute.stores.MemoryStore
]


setup(
    name=about['__title__'],
    version=about['__version__'],
    description=about['__description__'],
    long_description=long_description,
    long_description_content_type='text/x-rst',
    packages=find_packages(include=('cached_attribute', 'cached_attribute.*')),
    classifiers=[
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: 3.10',
        'Programming Language :: Python :: 3.11',
        'Programming Language :: Python :: 3.12',
    ],
    python_requires='>=3.10',
    install_requires=requirements,
    extras_require=optional_dependencies,
)
