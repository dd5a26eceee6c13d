"""
Setup script for Bitcoin ATM Location Qualification
"""

from setuptools import setup, find_packages
import os

# Read the contents of README file
this_directory = os.path.abspath(os.path.dirname(__file__))
try:
    with open(os.path.join(this_directory, 'README.md'), encoding='utf-8') as f:
        long_description = f.read()
except FileNotFoundError:
    long_description = "BTM Qualify - Checks whether a street address qualifies for a Bitcoin ATM placement."

# Read requirements from requirements.txt
def read_requirements():
    """Read requirements from requirements.txt file"""
    requirements_path = os.path.join(this_directory, 'requirements.txt')
    try:
        with open(requirements_path, 'r') as f:
            return [line.strip() for line in f if line.strip() and not line.startswith('#')]
    except FileNotFoundError:
        return []

setup(
    name='btm-qualify',
    version='1.0.0',
    author='BTM Qualify Team',
    description='Qualifies street addresses for Bitcoin ATM placement using mapping, census and rule data',
    long_description=long_description,
    long_description_content_type='text/markdown',
    packages=find_packages(where='src'),
    package_dir={'': 'src'},
    classifiers=[
        'Development Status :: 4 - Beta',
        'Intended Audience :: Developers',
        'Operating System :: OS Independent',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: 3.9',
        'Programming Language :: Python :: 3.10',
        'Programming Language :: Python :: 3.11',
        'Topic :: Scientific/Engineering :: GIS',
        'Topic :: Database',
    ],
    python_requires='>=3.9',
    install_requires=read_requirements(),
    extras_require={
        'dev': [
            'pytest>=7.0.0',
            'pytest-asyncio>=0.21.0',
            'black>=22.0.0',
            'flake8>=5.0.0',
        ],
    },
    entry_points={
        'console_scripts': [
            'btm-qualify=btm_qualify.cli:cli',
        ],
    },
    include_package_data=True,
    zip_safe=False,
    keywords=[
        'bitcoin-atm', 'site-selection', 'geocoding', 'census',
        'population-density', 'cli', 'database'
    ],
)
