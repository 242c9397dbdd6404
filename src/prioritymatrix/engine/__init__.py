"""Classification, date handling and statistics engines."""
