"""Paging, field selection, conversions and query fragments for run listings."""