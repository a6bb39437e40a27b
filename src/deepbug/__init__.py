"""DeepBug portal: content publishing, accounts and a moderated chat."""
