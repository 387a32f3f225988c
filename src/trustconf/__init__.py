__author__ = 'Roland Hedberg'
__version__ = '1.0.0'
