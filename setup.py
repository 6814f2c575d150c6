from setuptools import setup, find_packages

setup(
    name             = 'scrollsense',
    version          = '1.0.0',
    description      = 'scrollsense — on-device app usage sessions by content category',
    author           = 'scrollsense contributors',
    packages         = find_packages(exclude=['tests*']),
    package_data     = {'scrollsense': ['data/*.json']},
    install_requires = open('requirements.txt').read().splitlines(),
    extras_require   = {
        'test': ['pytest>=7.0', 'httpx>=0.24'],
    },
    entry_points     = {
        'console_scripts': [
            'scrollsense     = scrollsense.cli:main',
            'scrollsense-api = scrollsense.api:main',
        ],
    },
    python_requires  = '>=3.10',
    classifiers      = [
        'Programming Language :: Python :: 3',
        'License :: OSI Approved :: MIT License',
        'Operating System :: OS Independent',
    ],
)
