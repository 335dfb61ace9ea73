"""
Search layer: query text -> embedding -> nearest recipes in recipe_embeddings.
"""
