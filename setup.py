from setuptools import setup


requires = ["freetype-py>=2.0.0", "Pillow>=9.1"]

with open('README.md') as f:
    readme = f.read()

with open('LICENSE') as f:
    license = f.read()

setup(
    name='zplbuilder',
    version='0.1.0',
    description='ZPL label document builder for Zebra printers',
    long_description=readme,
    long_description_content_type='text/markdown',
    license='MIT',
    keywords='zpl zebra label printing barcode freetype',
    packages=[
        "zplbuilder",
    ],
    install_requires=requires,
    extras_require={
        'test': ['pytest'],
    },
    python_requires='>=3.7',
    classifiers=[
        'Topic :: Printing',
    ],
)
