"""Scaling decision layers: SLOs, reactive rules, precedence, validation and safety."""