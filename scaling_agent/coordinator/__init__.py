"""Cluster-wide scaling coordination and workload dependencies."""