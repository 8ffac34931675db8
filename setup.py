from setuptools import setup, find_packages

setup(name='promisegraph',
      version='0.0.1',
      description='A continuation-passing task graph of promises, driven by an external scheduler',
      classifiers=[
          "Programming Language :: Python :: 3",
          "License :: OSI Approved :: MIT License",
      ],
      keywords='promise continuation scheduler',
      license='MIT',
      packages=find_packages(),
      python_requires='>=3.8',
      install_requires=['trio', 'outcome'],
      extras_require={'test': ['pytest']},
)
