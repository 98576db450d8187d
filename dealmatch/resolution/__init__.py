"""Entity resolution engine: classify, block, match and link legacy deal records."""
