"""HTTP surface for the order queue."""
