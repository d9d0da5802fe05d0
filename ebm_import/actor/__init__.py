"""Skeleton, skinning and animation reconstruction for EBM containers."""
