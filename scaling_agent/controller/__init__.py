"""Reconcile-cycle steps that combine signals, decisions, cost and coordination."""