"""This is the processing submodule.

This module contains the functionality necessary to turn raw acceleration into
activity labels. This includes the per-second aggregation, the run-length
segmentation and nesting of sojourns, the sojourn features, and the classifier
stages of the Soj-g algorithm.
"""
