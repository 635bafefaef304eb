"""Code emitters for optimized IR."""
