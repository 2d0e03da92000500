from setuptools import setup, find_packages

setup(
    name             = 'semantic-engine',
    version          = '1.0.0',
    description      = 'Semantic Engine: deterministic intent, behavior and evolution analysis of chat exports',
    author           = 'Nous Loop Solutions',
    packages         = find_packages(exclude=['tests*']),
    install_requires = open('requirements.txt').read().splitlines(),
    extras_require   = {
        'test': ['pytest>=7.0', 'hypothesis>=6.0', 'httpx>=0.24'],
    },
    entry_points     = {
        'console_scripts': [
            'semantic-engine     = semantic_engine.cli:main',
            'semantic-engine-api = semantic_engine.api:serve',
        ],
    },
    python_requires  = '>=3.10',
    classifiers      = [
        'Programming Language :: Python :: 3',
        'License :: OSI Approved :: MIT License',
        'Operating System :: OS Independent',
    ],
)
