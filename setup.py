from setuptools import setup, find_packages


def readme():
    with open('README.md') as f:
        return f.read()


setup(
    name='ppa',
    version='0.1.0',
    description='Point pattern analysis: summary statistics, edge '
                'correction and Monte Carlo envelope tests',
    long_description=readme(),
    long_description_content_type='text/markdown',
    author='Daniel Wennberg',
    author_email='daniel.wennberg@gmail.com',
    license='Apache 2.0',
    packages=find_packages(exclude=['tests', 'tests.*']),
    python_requires='>=3.8',
    install_requires=[
        'numpy>=1.17',
        'scipy',
        'pandas',
        'shapely>=2.0',
    ],
    extras_require={
        'test': ['pytest'],
    },
    entry_points={
        'console_scripts': [
            'ppa=ppa.cli:main',
        ],
    },
)
