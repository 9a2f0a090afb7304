from setuptools import setup

install_requires = [
    'click',
    'marshmallow>=3.13',
    'pymongo',
]

setup(
    name='spynl.queryfilter',
    description='Strips MongoDB operators from user provided documents.',
    version='23.6.0',
    entry_points={
        'console_scripts': ['spynl-queryfilter = cli:cli'],
    },
    packages=['spynl_queryfilter', 'spynl_dbaccess', 'cli'],
    install_requires=install_requires,
    extras_require={'test': ['pytest', 'pytest-cov']},
    python_requires='>=3.7',
    author='Softwear BV',
    author_email='development@softwear.nl',
    keywords='MongoDB operator injection',
    zip_safe=False,
)
