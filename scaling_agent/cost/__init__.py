"""Cost data, estimation and budget enforcement."""